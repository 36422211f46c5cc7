"""
quantavault.importer

Best-effort CSV import for password-manager exports.

Vendor exports are mapped by fixed column position (LAYOUTS); the generic
format locates columns by header name. Rows without a secret are skipped,
never reported as errors.

Known limitation: this is not a conformant CSV decoder. Quoted commas and
embedded newlines are not handled; double quotes are simply stripped.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .models import ImportCandidate

logger = logging.getLogger("quantavault.importer")

DEFAULT_TITLE = "Imported Password"


@dataclass(frozen=True)
class ColumnLayout:
    """
    Positional mapping for one vendor export.

    Each field maps to a tuple of column indices; the first non-empty value
    wins. A row with fewer than min_columns values is skipped.
    """
    min_columns: int
    title: Tuple[int, ...]
    username: Tuple[int, ...]
    secret: Tuple[int, ...]
    url: Tuple[int, ...] = ()
    notes: Tuple[int, ...] = ()
    default_title: str = DEFAULT_TITLE


_CHROME = ColumnLayout(min_columns=4, title=(0, 1), url=(1,), username=(2,), secret=(3,), notes=(4,))

LAYOUTS: Dict[str, ColumnLayout] = {
    # name,url,username,password[,note]
    "google": _CHROME,
    "chrome": _CHROME,
    # url,username,password,...
    "firefox": ColumnLayout(
        min_columns=3, title=(0,), url=(0,), username=(1,), secret=(2,),
        default_title="Firefox Password",
    ),
    # url,username,password,extra,name,grouping,fav
    "lastpass": ColumnLayout(
        min_columns=5, title=(4, 0), url=(0,), username=(1,), secret=(2,), notes=(3,),
        default_title="LastPass Password",
    ),
    # folder,favorite,type,name,notes,fields,reprompt,login_uri,login_username,login_password,...
    "bitwarden": ColumnLayout(
        min_columns=10, title=(3,), url=(7,), username=(8,), secret=(9,), notes=(4,),
        default_title="Bitwarden Password",
    ),
}

# header substrings for the generic format; first matching column wins
HEADER_HINTS: Dict[str, Tuple[str, ...]] = {
    "title": ("name", "title", "site"),
    "url": ("url", "website", "site"),
    "username": ("username", "email", "login"),
    "secret": ("password",),
    "notes": ("note", "comment"),
}

GENERIC_FORMATS = ("generic", "safari")
FORMATS = tuple(LAYOUTS) + GENERIC_FORMATS


def _split(line: str) -> List[str]:
    return [v.strip().replace('"', "") for v in line.split(",")]


def _pick(values: Sequence[str], indices: Sequence[int]) -> str:
    for i in indices:
        if 0 <= i < len(values) and values[i]:
            return values[i]
    return ""


def _candidate(title: str, username: str, secret: str, url: str, notes: str) -> ImportCandidate:
    return ImportCandidate(
        title=title,
        username=username,
        secret=secret,
        url=url or None,
        notes=notes or None,
    )


def _parse_layout(row: Sequence[str], layout: ColumnLayout) -> Optional[ImportCandidate]:
    if len(row) < layout.min_columns:
        return None
    secret = _pick(row, layout.secret)
    if not secret:
        return None
    return _candidate(
        title=_pick(row, layout.title) or layout.default_title,
        username=_pick(row, layout.username),
        secret=secret,
        url=_pick(row, layout.url),
        notes=_pick(row, layout.notes),
    )


def locate_columns(headers: Sequence[str]) -> Dict[str, int]:
    """Map field name -> column index for the generic format (-1 if absent)."""
    found = {}
    for fld, hints in HEADER_HINTS.items():
        found[fld] = next(
            (i for i, h in enumerate(headers) if any(hint in h for hint in hints)), -1
        )
    return found


def _parse_generic(row: Sequence[str], columns: Dict[str, int]) -> Optional[ImportCandidate]:
    secret_idx = columns["secret"]
    if secret_idx < 0 or secret_idx >= len(row):
        return None
    secret = row[secret_idx]
    if not secret:
        return None
    title = _pick(row, (columns["title"],))
    url = _pick(row, (columns["url"],))
    return _candidate(
        title=title or url or DEFAULT_TITLE,
        username=_pick(row, (columns["username"],)),
        secret=secret,
        url=url,
        notes=_pick(row, (columns["notes"],)),
    )


def parse_csv(text: str, format_hint: str = "generic") -> List[ImportCandidate]:
    """
    Parse CSV export text into import candidates, in input row order.
    The first non-blank line is the header.
    """
    fmt = (format_hint or "generic").lower()
    if fmt not in FORMATS:
        raise ValueError(f"unknown import format: {format_hint!r}")

    lines = [line for line in text.lstrip("\ufeff").split("\n") if line.strip()]
    if len(lines) < 2:
        return []

    headers = [h.lower() for h in _split(lines[0])]
    columns = locate_columns(headers) if fmt in GENERIC_FORMATS else None
    layout = LAYOUTS.get(fmt)

    candidates: List[ImportCandidate] = []
    skipped = 0
    for line in lines[1:]:
        row = _split(line)
        if columns is not None:
            parsed = _parse_generic(row, columns)
        else:
            parsed = _parse_layout(row, layout)
        if parsed is None:
            skipped += 1
            continue
        candidates.append(parsed)

    logger.info("parsed %d %s candidates (%d rows skipped)", len(candidates), fmt, skipped)
    return candidates

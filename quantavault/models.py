"""
quantavault.models

Plain data carriers passed between the scorer, generator, auditor, importer
and the vault stores:
- CredentialRecord: one stored credential (as returned by a store)
- CredentialDraft: payload for creating a record
- GeneratorConfig: options for the random password / passphrase generator
- SecurityFinding / SecurityScore: auditor output
- ImportCandidate / ImportResult: CSV import output
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

CATEGORIES = ("personal", "work", "finance", "social", "imported", "other")
DEFAULT_CATEGORY = "personal"
IMPORTED_CATEGORY = "imported"

# finding kinds
WEAK = "weak"
REUSED = "reused"
STALE = "stale"

SEVERITIES = ("low", "medium", "high", "critical")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Accept a datetime or ISO 8601 string; naive values are taken as UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _text(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string")
    return value


@dataclass
class CredentialDraft:
    owner: str
    title: str
    username: str
    secret: str
    url: Optional[str] = None
    notes: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    favorite: bool = False


@dataclass
class CredentialRecord:
    id: str
    owner: str
    title: str
    username: str
    secret: str
    strength_score: int
    created_at: datetime
    last_updated: datetime
    url: Optional[str] = None
    notes: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    favorite: bool = False

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["created_at"] = self.created_at.isoformat()
        d["last_updated"] = self.last_updated.isoformat()
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialRecord":
        return cls(
            id=str(data["id"]),
            owner=str(data["owner"]),
            title=_text(data, "title"),
            username=_text(data, "username"),
            secret=_text(data, "secret"),
            strength_score=int(data.get("strength_score", 0)),
            created_at=parse_timestamp(data["created_at"]),
            last_updated=parse_timestamp(data["last_updated"]),
            url=data.get("url") or None,
            notes=data.get("notes") or None,
            category=data.get("category") or DEFAULT_CATEGORY,
            favorite=bool(data.get("favorite", False)),
        )


@dataclass
class GeneratorConfig:
    length: int = 16
    lowercase: bool = True
    uppercase: bool = True
    digits: bool = True
    symbols: bool = True
    exclude_ambiguous: bool = False
    # passphrase mode
    word_count: int = 4
    separator: str = "-"


@dataclass
class SecurityFinding:
    kind: str
    severity: str
    title: str
    description: str
    record_ids: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.severity not in SEVERITIES:
            raise ValueError(f"unknown severity: {self.severity!r}")

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["record_ids"] = list(self.record_ids)
        return d


@dataclass
class SecurityScore:
    overall: int = 0
    strength: int = 0
    uniqueness: int = 0
    age: int = 0
    two_factor: int = 0

    @property
    def breakdown(self) -> Dict[str, int]:
        return {
            "strength": self.strength,
            "uniqueness": self.uniqueness,
            "age": self.age,
            "twoFactor": self.two_factor,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"overall": self.overall, "breakdown": self.breakdown}


@dataclass
class ImportCandidate:
    title: str
    username: str
    secret: str
    url: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ImportResult:
    imported: List[CredentialRecord] = field(default_factory=list)
    failed: List[Tuple[ImportCandidate, str]] = field(default_factory=list)

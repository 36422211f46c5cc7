"""
quantavault.service

Owner-scoped password service on top of a VaultStore: validation, search,
favourites, CSV import and audit. Records are written through the store,
which derives strength_score from the secret.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from . import events
from .auditor import calculate_security_score, run_security_check
from .errors import QuantaVaultError, StoreError, ValidationError
from .events import ChangeNotifier
from .models import (
    CredentialDraft, CredentialRecord, ImportCandidate, ImportResult,
    SecurityFinding, SecurityScore, DEFAULT_CATEGORY, IMPORTED_CATEGORY,
)
from .store import VaultStore

logger = logging.getLogger("quantavault.service")

MIN_SECRET_LENGTH = 6
FAVORITES = "favorites"

EDITABLE_FIELDS = ("title", "username", "secret", "url", "notes", "category", "favorite")
_REQUIRED = ("title", "username", "secret", "category")


def validate_form(fields: Dict[str, Any]) -> Dict[str, str]:
    """
    Entry form rules: title, username and category are required and the
    password must be at least MIN_SECRET_LENGTH characters. Returns
    {field: message}; empty when valid.
    """
    errors = {}
    if not (fields.get("title") or "").strip():
        errors["title"] = "Title is required"
    if not (fields.get("username") or "").strip():
        errors["username"] = "Username is required"
    if len(fields.get("secret") or "") < MIN_SECRET_LENGTH:
        errors["secret"] = f"Password must be at least {MIN_SECRET_LENGTH} characters"
    if not (fields.get("category") or "").strip():
        errors["category"] = "Category is required"
    return errors


def _check_required(fields: Dict[str, Any]) -> None:
    errors = {k: f"{k} must not be empty" for k in _REQUIRED if k in fields and not fields[k]}
    if errors:
        raise ValidationError(errors)


class PasswordService:
    def __init__(self, store: VaultStore, owner: str, notifier: Optional[ChangeNotifier] = None):
        if not owner:
            raise ValueError("owner is required")
        self.store = store
        self.owner = owner
        self.notifier = notifier or ChangeNotifier()

    # --- reads ---

    def list(self) -> List[CredentialRecord]:
        return self.store.list(self.owner)

    def get(self, record_id: str) -> CredentialRecord:
        record = self.store.get(record_id)
        if record.owner != self.owner:
            raise StoreError(f"record not found: {record_id}")
        return record

    def search(self, term: str = "", category: Optional[str] = None, descending: bool = False) -> List[CredentialRecord]:
        """
        Filter by a case-insensitive term over title, username and url, then by
        category ('favorites' selects favourites), sorted by title.
        """
        term = (term or "").lower()
        out = []
        for r in self.list():
            if term and not (
                term in r.title.lower()
                or term in r.username.lower()
                or (r.url and term in r.url.lower())
            ):
                continue
            if category == FAVORITES and not r.favorite:
                continue
            if category and category != FAVORITES and r.category != category:
                continue
            out.append(r)
        return sorted(out, key=lambda r: r.title.lower(), reverse=descending)

    # --- writes ---

    def create(
        self,
        title: str,
        username: str,
        secret: str,
        url: Optional[str] = None,
        notes: Optional[str] = None,
        category: str = DEFAULT_CATEGORY,
        favorite: bool = False,
    ) -> CredentialRecord:
        _check_required({"title": title, "username": username, "secret": secret, "category": category})
        draft = CredentialDraft(
            owner=self.owner,
            title=title,
            username=username,
            secret=secret,
            url=url or None,
            notes=notes or None,
            category=category,
            favorite=favorite,
        )
        record = self.store.create(draft)
        logger.info("created record %s (%s)", record.id, record.category)
        self.notifier.publish(events.SAVED, record)
        return record

    def update(self, record_id: str, **fields: Any) -> CredentialRecord:
        unknown = [k for k in fields if k not in EDITABLE_FIELDS]
        if unknown:
            raise ValidationError({k: "field cannot be updated" for k in unknown})
        _check_required(fields)
        self.get(record_id)
        changes = dict(fields)
        for k in ("url", "notes"):
            if k in changes:
                changes[k] = changes[k] or None
        record = self.store.update(record_id, changes)
        logger.info("updated record %s (%s)", record_id, ", ".join(sorted(fields)) or "no fields")
        self.notifier.publish(events.SAVED, record)
        return record

    def delete(self, record_id: str) -> None:
        self.get(record_id)
        self.store.delete(record_id)
        logger.info("deleted record %s", record_id)
        self.notifier.publish(events.DELETED, record_id)

    def toggle_favorite(self, record_id: str) -> CredentialRecord:
        record = self.get(record_id)
        return self.update(record_id, favorite=not record.favorite)

    def import_candidates(self, candidates: Iterable[ImportCandidate]) -> ImportResult:
        """
        Create each candidate through the normal create path with category
        'imported'. Individual failures are collected, not raised.
        """
        result = ImportResult()
        for c in candidates:
            try:
                record = self.create(
                    title=c.title,
                    username=c.username,
                    secret=c.secret,
                    url=c.url,
                    notes=c.notes,
                    category=IMPORTED_CATEGORY,
                )
            except QuantaVaultError as e:
                logger.warning("import of %r failed: %s", c.title, e)
                result.failed.append((c, str(e)))
                continue
            result.imported.append(record)
        self.notifier.publish(events.IMPORTED, result)
        return result

    # --- audit ---

    def audit(self, now: Optional[datetime] = None) -> List[SecurityFinding]:
        return run_security_check(self.list(), now=now)

    def security_score(self, two_factor: int = 0, now: Optional[datetime] = None) -> SecurityScore:
        return calculate_security_score(self.list(), two_factor=two_factor, now=now)

"""
quantavault.store

Vault store facade: the CRUD boundary the service writes through.
Every failure surfaces as StoreError with a message.
strength_score is never written by callers: it is computed from the secret
whenever a record is created or its secret changes.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, replace
from typing import Any, Dict, List

from .errors import StoreError
from .evaluator import score_password
from .models import CredentialDraft, CredentialRecord, utcnow

UPDATABLE_FIELDS = ("title", "username", "secret", "url", "notes", "category", "favorite")


def new_record(draft: CredentialDraft) -> CredentialRecord:
    """Build a stored record from a draft, assigning id, score and timestamps."""
    now = utcnow()
    return CredentialRecord(
        id=uuid.uuid4().hex,
        strength_score=score_password(draft.secret),
        created_at=now,
        last_updated=now,
        **asdict(draft),
    )


def apply_update(record: CredentialRecord, fields: Dict[str, Any]) -> CredentialRecord:
    bad = [k for k in fields if k not in UPDATABLE_FIELDS]
    if bad:
        raise StoreError(f"cannot update field(s): {', '.join(sorted(bad))}")
    changes = dict(fields)
    if "secret" in changes:
        changes["strength_score"] = score_password(changes["secret"])
    return replace(record, last_updated=utcnow(), **changes)


def sort_by_title(records: List[CredentialRecord]) -> List[CredentialRecord]:
    return sorted(records, key=lambda r: (r.title.lower(), r.created_at))


class VaultStore(ABC):
    @abstractmethod
    def list(self, owner: str) -> List[CredentialRecord]:
        """All records of owner, ordered by title."""

    @abstractmethod
    def get(self, record_id: str) -> CredentialRecord:
        ...

    @abstractmethod
    def create(self, draft: CredentialDraft) -> CredentialRecord:
        ...

    @abstractmethod
    def update(self, record_id: str, fields: Dict[str, Any]) -> CredentialRecord:
        ...

    @abstractmethod
    def delete(self, record_id: str) -> None:
        ...


class MemoryVaultStore(VaultStore):
    """Dict-backed store for tests and short-lived sessions."""

    def __init__(self):
        self._records: Dict[str, CredentialRecord] = {}

    def list(self, owner: str) -> List[CredentialRecord]:
        return sort_by_title([r for r in self._records.values() if r.owner == owner])

    def get(self, record_id: str) -> CredentialRecord:
        try:
            return self._records[record_id]
        except KeyError:
            raise StoreError(f"record not found: {record_id}") from None

    def create(self, draft: CredentialDraft) -> CredentialRecord:
        record = new_record(draft)
        self._records[record.id] = record
        return record

    def update(self, record_id: str, fields: Dict[str, Any]) -> CredentialRecord:
        record = apply_update(self.get(record_id), fields)
        self._records[record_id] = record
        return record

    def delete(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is None:
            raise StoreError(f"record not found: {record_id}")

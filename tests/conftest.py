from datetime import datetime, timedelta, timezone

import pytest

from quantavault.models import CredentialRecord

# cheap Argon2id parameters so vault tests stay fast
FAST_KDF = {"time_cost": 1, "memory_cost_kb": 1024, "parallelism": 1}

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fast_kdf():
    return dict(FAST_KDF)


@pytest.fixture
def make_record():
    def _make(record_id, secret="S3cure!Pass", strength_score=90, days_ago=0, **kw):
        updated = NOW - timedelta(days=days_ago)
        fields = dict(
            id=record_id,
            owner="alice",
            title=f"Site {record_id}",
            username="alice@example.com",
            secret=secret,
            strength_score=strength_score,
            created_at=updated,
            last_updated=updated,
        )
        fields.update(kw)
        return CredentialRecord(**fields)
    return _make


@pytest.fixture
def qv_home(tmp_path, monkeypatch):
    monkeypatch.setenv("QUANTAVAULT_HOME", str(tmp_path))
    monkeypatch.delenv("APPDATA", raising=False)
    return tmp_path

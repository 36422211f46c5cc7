import pytest

from quantavault import events
from quantavault.errors import StoreError, ValidationError
from quantavault.evaluator import score_password
from quantavault.importer import parse_csv
from quantavault.models import ImportCandidate
from quantavault.service import PasswordService, validate_form
from quantavault.store import MemoryVaultStore
from quantavault.vault import EncryptedVaultStore, create_vault

from conftest import FAST_KDF


@pytest.fixture
def svc():
    return PasswordService(MemoryVaultStore(), "alice")


def test_create_scores_secret(svc):
    r = svc.create("Gmail", "me@x.com", "Secret123", url="", category="work")
    assert r.strength_score == score_password("Secret123")
    assert r.owner == "alice"
    assert r.url is None
    assert r.id and r.created_at == r.last_updated


def test_create_requires_fields(svc):
    with pytest.raises(ValidationError) as exc:
        svc.create("", "me", "")
    assert set(exc.value.errors) == {"title", "secret"}


def test_update_recomputes_score(svc):
    r = svc.create("Gmail", "me@x.com", "abc")
    assert r.strength_score == score_password("abc")
    r2 = svc.update(r.id, secret="Xk9#mPq2vLw8!")
    assert r2.strength_score == score_password("Xk9#mPq2vLw8!")
    r3 = svc.update(r.id, title="Google")
    assert r3.strength_score == r2.strength_score


def test_update_rejects_supplied_score(svc):
    r = svc.create("Gmail", "me@x.com", "abc")
    with pytest.raises(ValidationError):
        svc.update(r.id, strength_score=100)
    with pytest.raises(ValidationError):
        svc.update(r.id, owner="bob")
    assert svc.get(r.id).strength_score == score_password("abc")


def test_owner_isolation():
    store = MemoryVaultStore()
    alice = PasswordService(store, "alice")
    bob = PasswordService(store, "bob")
    r = alice.create("Gmail", "me", "pw1234")
    assert bob.list() == []
    with pytest.raises(StoreError):
        bob.get(r.id)
    with pytest.raises(StoreError):
        bob.delete(r.id)


def test_search_filter_and_sort(svc):
    svc.create("beta", "b@x.com", "pw1234", url="https://beta.io", category="work")
    svc.create("Alpha", "a@x.com", "pw1234", category="personal", favorite=True)
    svc.create("gamma", "g@x.com", "pw1234", category="work")

    assert [r.title for r in svc.search()] == ["Alpha", "beta", "gamma"]
    assert [r.title for r in svc.search(descending=True)] == ["gamma", "beta", "Alpha"]
    assert [r.title for r in svc.search("BETA.IO")] == ["beta"]
    assert [r.title for r in svc.search("@x.com", category="work")] == ["beta", "gamma"]
    assert [r.title for r in svc.search(category="favorites")] == ["Alpha"]


def test_toggle_favorite_and_delete(svc):
    r = svc.create("Gmail", "me", "pw1234")
    assert svc.toggle_favorite(r.id).favorite is True
    assert svc.toggle_favorite(r.id).favorite is False
    svc.delete(r.id)
    assert svc.list() == []


def test_notifications(svc):
    seen = []
    unsubscribe = svc.notifier.subscribe(events.SAVED, seen.append)
    deleted = []
    svc.notifier.subscribe(events.DELETED, deleted.append)

    r = svc.create("Gmail", "me", "pw1234")
    svc.update(r.id, notes="hello")
    assert [x.id for x in seen] == [r.id, r.id]

    unsubscribe()
    svc.toggle_favorite(r.id)
    assert len(seen) == 2

    svc.delete(r.id)
    assert deleted == [r.id]


def test_import_candidates(svc):
    candidates = parse_csv(
        "name,url,username,password\n"
        "Gmail,https://gmail.com,me@x.com,Secret123\n"
        "NoUser,https://x.com,,pw99\n"
        "Dup,https://gmail.com,me2@x.com,Secret123\n",
        "generic",
    )
    result = svc.import_candidates(candidates)
    assert [r.title for r in result.imported] == ["Gmail", "Dup"]
    assert all(r.category == "imported" for r in result.imported)
    assert all(r.strength_score == score_password(r.secret) for r in result.imported)
    assert len(result.failed) == 1
    assert result.failed[0][0].title == "NoUser"

    # the duplicate surfaces in the audit, not in the parser
    kinds = [f.kind for f in svc.audit()]
    assert "reused" in kinds
    assert svc.security_score().uniqueness == 50


def test_import_notifies_once(svc):
    results = []
    svc.notifier.subscribe(events.IMPORTED, results.append)
    svc.import_candidates([ImportCandidate(title="A", username="u", secret="pw1234")])
    assert len(results) == 1
    assert len(results[0].imported) == 1


def test_validate_form():
    assert validate_form({"title": "t", "username": "u", "secret": "123456", "category": "work"}) == {}
    errors = validate_form({"title": " ", "username": "", "secret": "12345", "category": ""})
    assert set(errors) == {"title", "username", "secret", "category"}
    assert "6" in errors["secret"]


def test_service_over_encrypted_store(tmp_path):
    path = str(tmp_path / "vault.bin")
    create_vault("master", path, FAST_KDF)
    svc = PasswordService(EncryptedVaultStore("master", path), "alice")
    r = svc.create("Gmail", "me", "Secret123")
    svc.update(r.id, secret="n3w-Secret!")

    again = PasswordService(EncryptedVaultStore("master", path), "alice")
    (stored,) = again.list()
    assert stored.secret == "n3w-Secret!"
    assert stored.strength_score == score_password("n3w-Secret!")

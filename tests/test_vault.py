import os
import tempfile
import json
import base64

import pytest

from quantavault import vault
from quantavault.errors import StoreError
from quantavault.evaluator import score_password
from quantavault.models import CredentialDraft, ImportCandidate
from quantavault.service import PasswordService
from quantavault.storage import atomic_read_bytes, read_json_bytes
from quantavault.store import MemoryVaultStore
from quantavault.vault import (
    EncryptedVaultStore, change_master_password, create_vault, open_vault, kdf_params_of,
)

from conftest import FAST_KDF


def _draft(title="Example", secret="p@ssW0rd!", owner="alice"):
    return CredentialDraft(owner=owner, title=title, username="u", secret=secret)


def test_vault_create_and_open():
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "vault.bin")
        master = "CorrectHorseBatteryStaple!23"
        create_vault(master, path, FAST_KDF)
        data = open_vault(master, path)
        assert data == {"records": []}
        assert kdf_params_of(path)["memory_cost_kb"] == FAST_KDF["memory_cost_kb"]


def test_plaintext_never_written(tmp_path):
    path = str(tmp_path / "vault.bin")
    create_vault("m", path, FAST_KDF)
    EncryptedVaultStore("m", path).create(_draft(secret="VerySecretValue"))
    raw = atomic_read_bytes(path)
    assert b"VerySecretValue" not in raw
    assert read_json_bytes(raw)["kdf"]["type"] == "argon2id"


def test_create_refuses_to_overwrite(tmp_path):
    path = str(tmp_path / "vault.bin")
    create_vault("m", path, FAST_KDF)
    with pytest.raises(StoreError):
        create_vault("m", path, FAST_KDF)


def test_store_add_list_update_remove(tmp_path):
    path = str(tmp_path / "vault.bin")
    master = "S3cureMaster!"
    create_vault(master, path, FAST_KDF)
    store = EncryptedVaultStore(master, path)

    b = store.create(_draft("beta"))
    a = store.create(_draft("Alpha"))
    store.create(_draft("other", owner="bob"))
    assert [r.title for r in store.list("alice")] == ["Alpha", "beta"]
    assert store.get(a.id) == a

    updated = store.update(a.id, {"favorite": True, "notes": "n"})
    assert updated.favorite and updated.notes == "n"
    assert updated.created_at == a.created_at
    assert updated.last_updated >= a.last_updated
    # reopen with a fresh store instance
    assert EncryptedVaultStore(master, path).get(a.id).favorite

    store.delete(b.id)
    assert [r.id for r in store.list("alice")] == [a.id]
    with pytest.raises(StoreError):
        store.delete(b.id)
    with pytest.raises(StoreError):
        store.update(a.id, {"owner": "mallory"})


def test_wrong_password_fails():
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "vault.bin")
        create_vault("abc123!", path, FAST_KDF)
        try:
            open_vault("wrongpass", path)
            ok = True
        except StoreError:
            ok = False
        assert not ok
        with pytest.raises(StoreError):
            EncryptedVaultStore("wrongpass", path).list("alice")


def test_missing_vault(tmp_path):
    with pytest.raises(StoreError):
        EncryptedVaultStore("m", str(tmp_path / "nope.bin")).list("alice")


def test_tamper_detection():
    # tamper with ciphertext and expect failure
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "vault.bin")
        master = "TamperTest!"
        create_vault(master, path, FAST_KDF)
        raw = atomic_read_bytes(path)
        j = read_json_bytes(raw)
        ct = bytearray(base64.b64decode(j["cipher"]["ciphertext"]))
        ct[0] ^= 0xFF
        j["cipher"]["ciphertext"] = base64.b64encode(bytes(ct)).decode("ascii")
        with open(path, "wb") as f:
            f.write(json.dumps(j).encode("utf-8"))
        try:
            open_vault(master, path)
            ok = True
        except StoreError:
            ok = False
        assert not ok


def test_change_master_password(tmp_path):
    path = str(tmp_path / "vault.bin")
    create_vault("old", path, FAST_KDF)
    record = EncryptedVaultStore("old", path).create(_draft())
    change_master_password("old", "new", path)
    assert EncryptedVaultStore("new", path).get(record.id).secret == record.secret
    with pytest.raises(StoreError):
        open_vault("old", path)
    # kdf parameters survive the re-encryption
    assert kdf_params_of(path)["time_cost"] == FAST_KDF["time_cost"]


@pytest.mark.parametrize("make_store", [
    lambda path: MemoryVaultStore(),
    lambda path: EncryptedVaultStore("m", path),
])
def test_store_scores_the_secret(tmp_path, make_store):
    path = str(tmp_path / "vault.bin")
    create_vault("m", path, FAST_KDF)
    store = make_store(path)

    r = store.create(_draft(secret="abc"))
    assert r.strength_score == score_password("abc")

    r = store.update(r.id, {"secret": "Xk9#mPq2vLw8!"})
    assert r.strength_score == 100
    assert store.get(r.id).strength_score == 100

    r = store.update(r.id, {"notes": "n"})
    assert r.strength_score == 100
    with pytest.raises(StoreError):
        store.update(r.id, {"strength_score": 5})


def test_store_derives_key_once(tmp_path, monkeypatch):
    path = str(tmp_path / "vault.bin")
    create_vault("m", path, FAST_KDF)
    calls = []
    derive = vault._derive_key

    def counting(*args, **kwargs):
        calls.append(args[1])
        return derive(*args, **kwargs)

    monkeypatch.setattr(vault, "_derive_key", counting)
    svc = PasswordService(EncryptedVaultStore("m", path), "alice")
    result = svc.import_candidates([
        ImportCandidate(title=f"Site {i}", username="u", secret=f"Secret-{i}!") for i in range(5)
    ])
    assert len(result.imported) == 5
    svc.toggle_favorite(result.imported[0].id)
    svc.update(result.imported[1].id, secret="An0ther-Secret!")
    assert len(calls) == 1

    # the salt is kept, so a fresh open still works
    assert len(open_vault("m", path)["records"]) == 5
    assert len(calls) == 2


def test_store_notices_resalted_vault(tmp_path):
    path = str(tmp_path / "vault.bin")
    create_vault("old", path, FAST_KDF)
    store = EncryptedVaultStore("old", path)
    store.create(_draft())
    change_master_password("old", "new", path)
    with pytest.raises(StoreError):
        store.list("alice")

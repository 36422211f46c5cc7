"""
quantavault.vault
Argon2id KDF + AES-GCM encrypted local vault, and the VaultStore built on it.

File layout (JSON wrapper, plaintext never written to disk):
{
  "version": 1,
  "kdf": {"type": "argon2id", "time_cost", "memory_cost_kb", "parallelism", "salt"},
  "cipher": {"nonce", "ciphertext"}
}
The decrypted payload is {"records": [CredentialRecord.to_dict(), ...]}.
"""

import os
import json
import base64
import logging
from typing import Any, Dict, List, Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from argon2 import low_level

from .errors import StoreError
from .models import CredentialDraft, CredentialRecord
from .storage import atomic_write_bytes, atomic_read_bytes, default_vault_path, dump_json_bytes, read_json_bytes
from .store import VaultStore, apply_update, new_record, sort_by_title

logger = logging.getLogger("quantavault.vault")

# Default KDF params (tunable). Balance security/performance.
DEFAULT_KDF_PARAMS = {
    "time_cost": 3,        # iterations
    "memory_cost_kb": 65536,  # 64 MB
    "parallelism": 2,
    "hash_len": 32
}

VAULT_VERSION = 1


def _derive_key(password: str, salt: bytes, params: Dict[str, int]) -> bytes:
    """
    Derive a raw key using Argon2id low-level API.
    """
    return low_level.hash_secret_raw(
        secret=password.encode("utf-8"),
        salt=salt,
        time_cost=int(params.get("time_cost", DEFAULT_KDF_PARAMS["time_cost"])),
        memory_cost=int(params.get("memory_cost_kb", DEFAULT_KDF_PARAMS["memory_cost_kb"])),
        parallelism=int(params.get("parallelism", DEFAULT_KDF_PARAMS["parallelism"])),
        hash_len=int(params.get("hash_len", DEFAULT_KDF_PARAMS["hash_len"])),
        type=low_level.Type.ID
    )


def _kdf_of(wrapper: Dict[str, Any]) -> Dict[str, int]:
    kdf = wrapper.get("kdf", {})
    return {
        "time_cost": kdf.get("time_cost", DEFAULT_KDF_PARAMS["time_cost"]),
        "memory_cost_kb": kdf.get("memory_cost_kb", DEFAULT_KDF_PARAMS["memory_cost_kb"]),
        "parallelism": kdf.get("parallelism", DEFAULT_KDF_PARAMS["parallelism"]),
        "hash_len": DEFAULT_KDF_PARAMS["hash_len"]
    }


def _encrypt(key: bytes, salt: bytes, kdf: Dict[str, int], data: Dict[str, Any]) -> Dict[str, Any]:
    # fresh nonce on every write, also when the key is reused
    nonce = os.urandom(12)
    ciphertext = AESGCM(key).encrypt(nonce, dump_json_bytes(data), None)
    return {
        "version": VAULT_VERSION,
        "kdf": {
            "type": "argon2id",
            "time_cost": kdf["time_cost"],
            "memory_cost_kb": kdf["memory_cost_kb"],
            "parallelism": kdf["parallelism"],
            "salt": base64.b64encode(salt).decode("ascii")
        },
        "cipher": {
            "nonce": base64.b64encode(nonce).decode("ascii"),
            "ciphertext": base64.b64encode(ciphertext).decode("ascii")
        }
    }


def _seal(master_password: str, data: Dict[str, Any], kdf_params: Optional[Dict[str, int]]) -> Dict[str, Any]:
    kdf = dict(DEFAULT_KDF_PARAMS)
    kdf.update(kdf_params or {})
    salt = os.urandom(16)
    return _encrypt(_derive_key(master_password, salt, kdf), salt, kdf, data)


def _unpack(wrapper: Dict[str, Any]) -> Tuple[bytes, bytes, bytes]:
    """(salt, nonce, ciphertext) of a loaded wrapper."""
    salt_b64 = wrapper.get("kdf", {}).get("salt")
    if not salt_b64:
        raise StoreError("Invalid vault format: missing salt")
    try:
        cipher = wrapper.get("cipher", {})
        return (
            base64.b64decode(salt_b64),
            base64.b64decode(cipher.get("nonce", "")),
            base64.b64decode(cipher.get("ciphertext", "")),
        )
    except ValueError as e:
        raise StoreError("Invalid vault format: bad encoding") from e


def _decrypt(key: bytes, nonce: bytes, ciphertext: bytes) -> Dict[str, Any]:
    try:
        plaintext_bytes = AESGCM(key).decrypt(nonce, ciphertext, None)
    except (InvalidTag, ValueError) as e:
        # wrong password, tampered ciphertext, or bad params
        raise StoreError("Incorrect master password or corrupted vault") from e
    return json.loads(plaintext_bytes.decode("utf-8"))


def _load_wrapper(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise StoreError(f"Vault not found at {path}")
    try:
        wrapper = read_json_bytes(atomic_read_bytes(path))
    except (OSError, ValueError) as e:
        raise StoreError(f"Unreadable vault file: {e}") from e
    if not isinstance(wrapper, dict):
        raise StoreError("Invalid vault format: expected a JSON object")
    return wrapper


def kdf_params_of(path: str) -> Dict[str, int]:
    """KDF parameters recorded in an existing vault file."""
    return _kdf_of(_load_wrapper(path))


def create_vault(master_password: str, path: Optional[str] = None, kdf_params: Optional[Dict[str, int]] = None) -> str:
    """
    Create a new empty vault and save to path. Returns path used.
    """
    if path is None:
        path = default_vault_path()
    if os.path.exists(path):
        raise StoreError(f"Vault already exists at {path}")
    atomic_write_bytes(path, dump_json_bytes(_seal(master_password, {"records": []}, kdf_params)))
    logger.info("created vault at %s", path)
    return path


def _open_wrapper(master_password: str, wrapper: Dict[str, Any]) -> Dict[str, Any]:
    salt, nonce, ciphertext = _unpack(wrapper)
    return _decrypt(_derive_key(master_password, salt, _kdf_of(wrapper)), nonce, ciphertext)


def open_vault(master_password: str, path: Optional[str] = None) -> Dict[str, Any]:
    """
    Decrypt and return the vault plaintext dict ({"records": [...]}).
    Raises StoreError on incorrect password or corrupted vault.
    """
    if path is None:
        path = default_vault_path()
    return _open_wrapper(master_password, _load_wrapper(path))


def save_vault(master_password: str, data: Dict[str, Any], path: Optional[str] = None, kdf_params: Optional[Dict[str, int]] = None) -> str:
    """
    Encrypt the provided plaintext dict and write to path atomically.
    A fresh salt and nonce are drawn on every save.
    """
    if path is None:
        path = default_vault_path()
    atomic_write_bytes(path, dump_json_bytes(_seal(master_password, data, kdf_params)))
    return path


def change_master_password(old_password: str, new_password: str, path: Optional[str] = None) -> None:
    """Decrypt with the old password and re-encrypt under the new one."""
    if path is None:
        path = default_vault_path()
    wrapper = _load_wrapper(path)
    data = _open_wrapper(old_password, wrapper)
    save_vault(new_password, data, path, _kdf_of(wrapper))
    logger.info("master password changed for %s", path)


class EncryptedVaultStore(VaultStore):
    """
    VaultStore over an encrypted vault file. Each call decrypts the file,
    applies the change and re-encrypts it with a fresh nonce.

    The Argon2id key is derived once per store and reused for as long as the
    file keeps the same salt and KDF parameters; it is re-derived if another
    writer (e.g. a master password change) re-salts the file.
    """

    def __init__(self, master_password: str, path: Optional[str] = None):
        self.path = path or default_vault_path()
        self._master = master_password
        self._key: Optional[bytes] = None
        self._salt: Optional[bytes] = None
        self._kdf: Optional[Dict[str, int]] = None

    def _load(self) -> List[CredentialRecord]:
        wrapper = _load_wrapper(self.path)
        salt, nonce, ciphertext = _unpack(wrapper)
        kdf = _kdf_of(wrapper)
        if self._key is None or salt != self._salt or kdf != self._kdf:
            self._key = _derive_key(self._master, salt, kdf)
            self._salt, self._kdf = salt, kdf
        data = _decrypt(self._key, nonce, ciphertext)
        try:
            return [CredentialRecord.from_dict(r) for r in data.get("records", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Malformed record in vault: {e}") from e

    def _save(self, records: List[CredentialRecord]) -> None:
        # callers always _load first, so the key matches the file on disk
        wrapper = _encrypt(self._key, self._salt, self._kdf, {"records": [r.to_dict() for r in records]})
        try:
            atomic_write_bytes(self.path, dump_json_bytes(wrapper))
        except OSError as e:
            raise StoreError(f"Failed to write vault: {e}") from e

    @staticmethod
    def _index(records: List[CredentialRecord], record_id: str) -> int:
        for i, r in enumerate(records):
            if r.id == record_id:
                return i
        raise StoreError(f"record not found: {record_id}")

    def list(self, owner: str) -> List[CredentialRecord]:
        return sort_by_title([r for r in self._load() if r.owner == owner])

    def get(self, record_id: str) -> CredentialRecord:
        records = self._load()
        return records[self._index(records, record_id)]

    def create(self, draft: CredentialDraft) -> CredentialRecord:
        records = self._load()
        record = new_record(draft)
        records.append(record)
        self._save(records)
        return record

    def update(self, record_id: str, fields: Dict[str, Any]) -> CredentialRecord:
        records = self._load()
        i = self._index(records, record_id)
        records[i] = apply_update(records[i], fields)
        self._save(records)
        return records[i]

    def delete(self, record_id: str) -> None:
        records = self._load()
        del records[self._index(records, record_id)]
        self._save(records)

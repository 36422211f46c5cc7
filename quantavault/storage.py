import os
import json
from typing import Any, Dict

APP_DIR_NAME = "QuantaVault"
HOME_ENV = "QUANTAVAULT_HOME"


def ensure_dir_exists(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def app_dir() -> str:
    """
    QUANTAVAULT_HOME if set, else %APPDATA%/QuantaVault on Windows,
    else ~/.quantavault.
    """
    override = os.getenv(HOME_ENV)
    if override:
        return override
    appdata = os.getenv("APPDATA")
    if appdata:
        return os.path.join(appdata, APP_DIR_NAME)
    return os.path.join(os.path.expanduser("~"), ".quantavault")


def default_vault_path() -> str:
    return os.path.join(app_dir(), "vault.bin")


def atomic_write_bytes(path: str, data: bytes) -> None:
    """
    Atomically write bytes to 'path' by writing to a temp file and renaming.
    """
    ensure_dir_exists(path)
    tmp = path + ".tmp"
    with open(tmp, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


def atomic_read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def read_json_bytes(b: bytes) -> Dict[str, Any]:
    return json.loads(b.decode("utf-8"))


def dump_json_bytes(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, ensure_ascii=False, indent=None).encode("utf-8")

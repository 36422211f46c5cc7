# quantavault/config.py
"""
Simple settings persistence for QuantaVault.
Settings saved as JSON in %APPDATA%/QuantaVault/config.json (Windows) or
~/.quantavault/config.json (fallback). QUANTAVAULT_HOME overrides the directory.
"""

import copy
import os
import json
import logging
from typing import Dict, Any, Optional

from .storage import app_dir, default_vault_path

logger = logging.getLogger("quantavault.config")

DEFAULTS: Dict[str, Any] = {
    "vault_path": None,  # if None, storage.default_vault_path() is used
    "owner": "local",
    "log_level": "WARNING",
    "two_factor_score": 0,
    "generator": {
        "length": 16,
        "lowercase": True,
        "uppercase": True,
        "digits": True,
        "symbols": True,
        "exclude_ambiguous": False,
        "word_count": 4,
        "separator": "-",
    },
    "kdf": {},  # overrides for vault.DEFAULT_KDF_PARAMS
}


def config_path() -> str:
    return os.path.join(app_dir(), "config.json")


def _merge(base: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in data.items():
        if isinstance(out.get(k), dict) and isinstance(v, dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    p = path or config_path()
    if not os.path.exists(p):
        return _merge(DEFAULTS, {})
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("ignoring unreadable config %s: %s", p, e)
        return _merge(DEFAULTS, {})
    if not isinstance(data, dict):
        logger.warning("ignoring config %s: expected a JSON object", p)
        return _merge(DEFAULTS, {})
    return _merge(DEFAULTS, data)


def save_config(cfg: Dict[str, Any], path: Optional[str] = None) -> None:
    p = path or config_path()
    os.makedirs(os.path.dirname(p) or ".", exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        json.dump(cfg, f, ensure_ascii=False, indent=2)


def vault_path(cfg: Dict[str, Any]) -> str:
    return cfg.get("vault_path") or default_vault_path()

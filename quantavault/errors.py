"""
quantavault.errors
Exception types shared by the generator, stores and service.
"""

from typing import Dict, Optional


class QuantaVaultError(Exception):
    """Base class for all QuantaVault errors."""


class InvalidConfig(QuantaVaultError, ValueError):
    """Generator configuration cannot produce a password."""


class StoreError(QuantaVaultError):
    """A vault store operation failed. Carries a message only."""


class ValidationError(QuantaVaultError, ValueError):
    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        if message is None:
            message = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        super().__init__(message)

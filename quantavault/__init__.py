"""QuantaVault: password strength scoring, generation, CSV import and vault auditing."""

__version__ = "0.1.0"

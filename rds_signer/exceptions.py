"""Errors raised while generating RDS authentication tokens."""

from typing import Optional


class SignerError(Exception):
    """Base class for all errors raised by rds_signer."""


class ConfigurationError(SignerError, ValueError):
    """Raised when a required setting is missing or has an invalid value."""
    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        self.message = message or f"'{field}' must be set before fetching a token"
        super().__init__(self.message)


class RegionResolutionError(SignerError):
    """Raised when no region was configured and none could be resolved."""


class CredentialError(SignerError):
    """Raised when the credential provider could not supply credentials."""


class EncodingError(SignerError, ValueError):
    """Raised when a request value cannot be canonicalized for signing."""

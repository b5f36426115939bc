"""
RDS IAM Authentication Tokens

This package generates IAM authentication tokens for Amazon RDS database
connections, signing them with a standalone implementation of AWS Signature
Version 4 rather than botocore's signers.
"""

from .exceptions import ConfigurationError, CredentialError, EncodingError, RegionResolutionError, SignerError
from .providers import (
    BotocoreCredentialProvider,
    BotocoreRegionResolver,
    CredentialProvider,
    RegionResolver,
    StaticCredentialProvider,
    StaticRegionResolver,
)
from .signer import DEFAULT_EXPIRES_IN, Signer
from .sigv4 import SERVICE, Credentials, PresignRequest, presign

__version__ = "0.1.0"
__all__ = [
    "Signer",
    "DEFAULT_EXPIRES_IN",
    "SERVICE",
    "Credentials",
    "PresignRequest",
    "presign",
    "CredentialProvider",
    "RegionResolver",
    "StaticCredentialProvider",
    "StaticRegionResolver",
    "BotocoreCredentialProvider",
    "BotocoreRegionResolver",
    "SignerError",
    "ConfigurationError",
    "RegionResolutionError",
    "CredentialError",
    "EncodingError",
]

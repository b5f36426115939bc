"""Credential and region sources consumed by the Signer."""

import asyncio
import logging
from typing import Optional, Protocol

from botocore.exceptions import BotoCoreError, ClientError
from botocore.session import Session, get_session

from .exceptions import CredentialError, RegionResolutionError
from .sigv4 import Credentials

logger = logging.getLogger(__name__)


class CredentialProvider(Protocol):
    async def resolve_credentials(self) -> Optional[Credentials]:
        """Return the current credentials, or None if none are configured."""


class RegionResolver(Protocol):
    async def resolve_region(self) -> Optional[str]:
        """Return the default region, or None if none is configured."""


class StaticCredentialProvider:
    """Always hands out the same credentials."""

    def __init__(self, access_key: str, secret_key: str, token: Optional[str] = None):
        self._credentials = Credentials(access_key, secret_key, token)

    async def resolve_credentials(self) -> Optional[Credentials]:
        return self._credentials


class StaticRegionResolver:
    def __init__(self, region: Optional[str]):
        self._region = region

    async def resolve_region(self) -> Optional[str]:
        return self._region


def _session(session: Optional[Session], profile: Optional[str]) -> Session:
    if session is None:
        session = get_session()
    if profile is not None:
        session.set_config_variable('profile', profile)
    return session


class BotocoreCredentialProvider:
    """
    Resolve credentials through botocore's default provider chain.

    Environment variables, shared credential/config files, container and
    instance metadata are consulted in botocore's usual order. Lookups may hit
    the network, so they run in a worker thread.
    """

    def __init__(self, session: Optional[Session] = None, profile: Optional[str] = None):
        self._session = _session(session, profile)

    def _load(self) -> Optional[Credentials]:
        try:
            credentials = self._session.get_credentials()
            if credentials is None:
                return None
            frozen = credentials.get_frozen_credentials()
        except (BotoCoreError, ClientError) as exc:
            raise CredentialError(f'Unable to load AWS credentials: {exc}') from exc
        logger.debug('Loaded AWS credentials from %s', credentials.method)
        return Credentials(frozen.access_key, frozen.secret_key, frozen.token)

    async def resolve_credentials(self) -> Optional[Credentials]:
        return await asyncio.to_thread(self._load)


class BotocoreRegionResolver:
    """Resolve the default region from botocore configuration (AWS_DEFAULT_REGION, profiles)."""

    def __init__(self, session: Optional[Session] = None, profile: Optional[str] = None):
        self._session = _session(session, profile)

    def _load(self) -> Optional[str]:
        try:
            return self._session.get_config_variable('region')
        except (BotoCoreError, ClientError) as exc:
            raise RegionResolutionError(f'Unable to resolve AWS region: {exc}') from exc

    async def resolve_region(self) -> Optional[str]:
        return await asyncio.to_thread(self._load)

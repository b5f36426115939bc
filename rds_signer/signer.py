"""
Generate IAM authentication tokens for RDS database connections.

Example::

    signer = (
        Signer()
        .host('mydb.123456789012.us-east-1.rds.amazonaws.com')
        .port(5432)
        .user('dbuser')
        .region('us-east-1')
    )
    token = await signer.fetch_token()

The token is used as the database password. It is valid for ``expires_in``
seconds (900 by default); callers fetch a new one before it lapses.
"""

import datetime
import logging
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Union

from botocore.session import get_session

from .exceptions import ConfigurationError, CredentialError, RegionResolutionError
from .providers import BotocoreCredentialProvider, BotocoreRegionResolver, CredentialProvider, RegionResolver
from .sigv4 import PresignRequest, presign

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 900

Clock = Callable[[], datetime.datetime]
Duration = Union[int, datetime.timedelta]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class _Settings:
    host: str
    port: int
    user: str
    region: Optional[str]
    expires_in: int


class Signer:
    """
    Builder-style holder for connection parameters.

    Setters return the signer itself so calls can be chained. A Signer is not
    safe to reconfigure while a ``fetch_token`` call on it is in flight from
    another task; each call signs a snapshot taken when it starts.
    """

    def __init__(
            self,
            credential_provider: Optional[CredentialProvider] = None,
            region_resolver: Optional[RegionResolver] = None,
            clock: Optional[Clock] = None
    ):
        if credential_provider is None or region_resolver is None:
            session = get_session()
            credential_provider = credential_provider or BotocoreCredentialProvider(session)
            region_resolver = region_resolver or BotocoreRegionResolver(session)
        self._credential_provider = credential_provider
        self._region_resolver = region_resolver
        self._clock = clock or _utcnow
        self._host: Optional[str] = None
        self._port: Optional[int] = None
        self._user: Optional[str] = None
        self._region: Optional[str] = None
        self._expires_in = DEFAULT_EXPIRES_IN

    def __repr__(self) -> str:
        return (
            f'Signer(host={self._host!r}, port={self._port!r}, user={self._user!r}, '
            f'region={self._region!r}, expires_in={self._expires_in!r})'
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **kwargs) -> 'Signer':
        """
        Build a Signer from ``DB_HOST``, ``DB_PORT``, ``DB_USER``, ``DB_REGION``
        and ``DB_TOKEN_EXPIRES_IN_SECONDS``.

        Unset variables leave the corresponding setting at its default. Extra
        keyword arguments are passed to the constructor.
        """
        environ = os.environ if environ is None else environ
        signer = cls(**kwargs)
        if environ.get('DB_HOST'):
            signer.host(environ['DB_HOST'])
        if environ.get('DB_PORT'):
            signer.port(_parse_int('port', environ['DB_PORT']))
        if environ.get('DB_USER'):
            signer.user(environ['DB_USER'])
        if environ.get('DB_REGION'):
            signer.region(environ['DB_REGION'])
        if environ.get('DB_TOKEN_EXPIRES_IN_SECONDS'):
            signer.expires_in(_parse_int('expires_in', environ['DB_TOKEN_EXPIRES_IN_SECONDS']))
        return signer

    def host(self, value: str) -> 'Signer':
        self._host = value
        return self

    def port(self, value: int) -> 'Signer':
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFFFF:
            raise ConfigurationError('port', f'port must be an integer between 0 and 65535, got {value!r}')
        self._port = value
        return self

    def user(self, value: str) -> 'Signer':
        self._user = value
        return self

    def region(self, value: Optional[str]) -> 'Signer':
        """Set the signing region; None falls back to the region resolver."""
        self._region = value
        return self

    def expires_in(self, value: Duration) -> 'Signer':
        """Set how long the token stays valid, in seconds or as a timedelta."""
        if isinstance(value, datetime.timedelta):
            if value < datetime.timedelta(0):
                raise ConfigurationError('expires_in', f'expires_in must not be negative, got {value!r}')
            seconds = int(value.total_seconds())
        elif isinstance(value, int) and not isinstance(value, bool):
            seconds = value
        else:
            raise ConfigurationError('expires_in', f'expires_in must be seconds or a timedelta, got {value!r}')
        if seconds < 0:
            raise ConfigurationError('expires_in', f'expires_in must not be negative, got {value!r}')
        self._expires_in = seconds
        return self

    def _settings(self) -> _Settings:
        if not self._host:
            raise ConfigurationError('host')
        if self._port is None:
            raise ConfigurationError('port')
        if not self._user:
            raise ConfigurationError('user')
        return _Settings(self._host, self._port, self._user, self._region, self._expires_in)

    async def _resolve_region(self, settings: _Settings) -> str:
        if settings.region:
            return settings.region
        region = await self._region_resolver.resolve_region()
        if not region:
            raise RegionResolutionError(
                'No region was configured and no default region could be resolved; '
                'set one explicitly or configure a default region'
            )
        logger.debug('Using default region %s', region)
        return region

    async def fetch_token(self) -> str:
        """
        Generate an authentication token for the configured database.

        Returns:
            ``<host>:<port>/?Action=connect&...&X-Amz-Signature=<hex>``

        Raises:
            ConfigurationError: host, port or user is not set.
            RegionResolutionError: no region is configured or resolvable.
            CredentialError: no credentials are available.
            EncodingError: a setting cannot be canonicalized for signing.
        """
        settings = self._settings()
        region = await self._resolve_region(settings)

        credentials = await self._credential_provider.resolve_credentials()
        if credentials is None:
            raise CredentialError('No AWS credentials are available')

        request = PresignRequest(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            region=region,
            expires_in=settings.expires_in,
            timestamp=self._clock(),
        )
        query_string = presign(request, credentials)
        logger.debug(
            'Generated auth token for %s@%s:%s in %s (expires in %ss)',
            settings.user, settings.host, settings.port, region, settings.expires_in
        )
        return f'{settings.host}:{settings.port}/?{query_string}'


def _parse_int(field: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(field, f'{field} must be an integer, got {value!r}') from None

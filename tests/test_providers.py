import os
import unittest
from typing import Dict
from unittest import mock

from botocore.exceptions import ClientError, NoCredentialsError, PartialCredentialsError, ProfileNotFound
from botocore.session import Session

from rds_signer import (
    BotocoreCredentialProvider,
    BotocoreRegionResolver,
    CredentialError,
    Credentials,
    RegionResolutionError,
    Signer,
    StaticCredentialProvider,
    StaticRegionResolver,
)

# Keeps botocore away from the developer's config files and instance metadata.
ISOLATED_ENV = {
    'AWS_CONFIG_FILE': os.path.join(os.path.dirname(__file__), 'does-not-exist', 'config'),
    'AWS_SHARED_CREDENTIALS_FILE': os.path.join(os.path.dirname(__file__), 'does-not-exist', 'credentials'),
    'AWS_EC2_METADATA_DISABLED': 'true',
}


def isolated_env(**extra: str) -> Dict[str, str]:
    env = dict(ISOLATED_ENV)
    env.update(extra)
    return env


class TestStaticProviders(unittest.IsolatedAsyncioTestCase):
    async def test_static_credentials(self) -> None:
        provider = StaticCredentialProvider('AKIAEXAMPLE', 'secret', 'token')

        self.assertEqual(await provider.resolve_credentials(), Credentials('AKIAEXAMPLE', 'secret', 'token'))

    async def test_static_region(self) -> None:
        self.assertEqual(await StaticRegionResolver('us-east-1').resolve_region(), 'us-east-1')
        self.assertIsNone(await StaticRegionResolver(None).resolve_region())


class TestBotocoreProviders(unittest.IsolatedAsyncioTestCase):
    async def test_credentials_from_environment(self) -> None:
        env = isolated_env(
            AWS_ACCESS_KEY_ID='AKIAEXAMPLE',
            AWS_SECRET_ACCESS_KEY='secret',
            AWS_SESSION_TOKEN='token',
        )
        with mock.patch.dict(os.environ, env, clear=True):
            credentials = await BotocoreCredentialProvider(Session()).resolve_credentials()

        self.assertEqual(credentials, Credentials('AKIAEXAMPLE', 'secret', 'token'))

    async def test_no_credentials(self) -> None:
        with mock.patch.dict(os.environ, isolated_env(), clear=True):
            credentials = await BotocoreCredentialProvider(Session()).resolve_credentials()

        self.assertIsNone(credentials)

    async def test_region_from_environment(self) -> None:
        with mock.patch.dict(os.environ, isolated_env(AWS_DEFAULT_REGION='ap-southeast-2'), clear=True):
            region = await BotocoreRegionResolver(Session()).resolve_region()

        self.assertEqual(region, 'ap-southeast-2')

    async def test_no_region(self) -> None:
        with mock.patch.dict(os.environ, isolated_env(), clear=True):
            region = await BotocoreRegionResolver(Session()).resolve_region()

        self.assertIsNone(region)

    async def test_credential_errors_are_translated(self) -> None:
        for error in (NoCredentialsError(), PartialCredentialsError(provider='env', cred_var='AWS_SECRET_ACCESS_KEY')):
            with self.subTest(error=type(error).__name__):
                session = mock.Mock(spec=Session)
                session.get_credentials.side_effect = error

                with self.assertRaises(CredentialError) as ctx:
                    await BotocoreCredentialProvider(session).resolve_credentials()
                self.assertIs(ctx.exception.__cause__, error)

    async def test_assume_role_failure_is_translated(self) -> None:
        error = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'not authorized to perform sts:AssumeRole'}},
            'AssumeRole',
        )
        session = mock.Mock(spec=Session)
        session.get_credentials.side_effect = error
        signer = (
            Signer(BotocoreCredentialProvider(session), StaticRegionResolver(None))
            .host('mydb.example.com')
            .port(5432)
            .user('dbuser')
            .region('us-east-1')
        )

        with self.assertRaises(CredentialError) as ctx:
            await signer.fetch_token()
        self.assertIs(ctx.exception.__cause__, error)

    async def test_region_errors_are_translated(self) -> None:
        session = mock.Mock(spec=Session)
        session.get_config_variable.side_effect = ProfileNotFound(profile='missing')

        with self.assertRaises(RegionResolutionError):
            await BotocoreRegionResolver(session).resolve_region()

    async def test_profile_is_applied_to_session(self) -> None:
        session = mock.Mock(spec=Session)

        BotocoreCredentialProvider(session, profile='analytics')

        session.set_config_variable.assert_called_once_with('profile', 'analytics')


if __name__ == '__main__':
    unittest.main(verbosity=2)

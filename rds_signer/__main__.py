"""Print an RDS IAM authentication token.

Settings default to the DB_* environment variables read by Signer.from_env;
command line options override them.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from botocore.session import get_session

from .exceptions import SignerError
from .providers import BotocoreCredentialProvider, BotocoreRegionResolver
from .signer import Signer


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='rds-signer', description=__doc__.splitlines()[0])
    parser.add_argument('--host', help='database endpoint (DB_HOST)')
    parser.add_argument('--port', type=int, help='database port (DB_PORT)')
    parser.add_argument('--user', help='database user (DB_USER)')
    parser.add_argument('--region', help='signing region (DB_REGION, else the AWS default region)')
    parser.add_argument('--expires-in', type=int, help='token lifetime in seconds (DB_TOKEN_EXPIRES_IN_SECONDS)')
    parser.add_argument('--profile', help='AWS profile to load credentials and region from')
    parser.add_argument('--log-level', default='WARNING', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format='%(levelname)s %(name)s: %(message)s')

    try:
        session = get_session()
        signer = Signer.from_env(
            credential_provider=BotocoreCredentialProvider(session, args.profile),
            region_resolver=BotocoreRegionResolver(session),
        )
        if args.host is not None:
            signer.host(args.host)
        if args.port is not None:
            signer.port(args.port)
        if args.user is not None:
            signer.user(args.user)
        if args.region is not None:
            signer.region(args.region)
        if args.expires_in is not None:
            signer.expires_in(args.expires_in)
        token = asyncio.run(signer.fetch_token())
    except SignerError as exc:
        print(f'error: {exc}', file=sys.stderr)
        return 1

    print(token)
    return 0


if __name__ == '__main__':
    sys.exit(main())

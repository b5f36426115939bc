#!/usr/bin/env python3
import os
import re
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
PYPROJECT_VERSION_RE = re.compile(r'^version = "([^"]+)"', re.MULTILINE)
PACKAGE_VERSION_RE = re.compile(r'__version__ = "[^"]+"')


def bump_version(current: str, bump_type: str) -> str:
    major, minor, patch = map(int, current.split('.'))
    if bump_type == 'major':
        return f"{major + 1}.0.0"
    elif bump_type == 'minor':
        return f"{major}.{minor + 1}.0"
    elif bump_type == 'patch':
        return f"{major}.{minor}.{patch + 1}"
    else:
        raise ValueError(f"Invalid bump type: {bump_type}")


def read_version(root: Path = ROOT) -> str:
    match = PYPROJECT_VERSION_RE.search((root / 'pyproject.toml').read_text())
    if not match:
        raise ValueError("Could not find version in pyproject.toml")
    return match.group(1)


def write_version(new_version: str, root: Path = ROOT) -> None:
    pyproject = root / 'pyproject.toml'
    pyproject.write_text(
        PYPROJECT_VERSION_RE.sub(f'version = "{new_version}"', pyproject.read_text(), count=1)
    )

    init = root / 'rds_signer' / '__init__.py'
    init.write_text(PACKAGE_VERSION_RE.sub(f'__version__ = "{new_version}"', init.read_text()))


def main():
    if len(sys.argv) != 2:
        print("Usage: bump_version.py <major|minor|patch>", file=sys.stderr)
        sys.exit(1)

    try:
        current_version = read_version()
        new_version = bump_version(current_version, sys.argv[1])
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    write_version(new_version)

    # Output for GitHub Actions
    github_output = os.environ.get('GITHUB_OUTPUT')
    if github_output:
        with open(github_output, 'a') as f:
            f.write(f"current_version={current_version}\n")
            f.write(f"new_version={new_version}\n")
    else:
        # Local usage: print to stdout
        print(f"Bumped version: {current_version} -> {new_version}")


if __name__ == '__main__':
    main()

"""Check that the relay's environment configuration is complete and unchanged.

Two checks are available:

1. Instantiate ``AppSettings`` from the given ``.env`` file so missing OAuth
   client credentials or a missing ``REDIRECT_BASE`` surface before the relay
   starts handing out broken authorization links.
2. Record and later verify a SHA256 checksum of the ``.env`` file to catch
   unexpected edits.

Example usages::

    python -m scripts.check_env record --env-file /srv/calendar-relay/.env \
        --hash-file /srv/calendar-relay/.env.sha256

    python -m scripts.check_env verify --env-file /srv/calendar-relay/.env \
        --hash-file /srv/calendar-relay/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path

from pydantic import ValidationError

from app.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    """Load ``env_file`` into the environment and build the settings from it."""
    if not env_file.exists():
        raise FileNotFoundError(
            f"Environment file {env_file} does not exist. "
            "Create it or pass --env-file with the correct path."
        )
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _describe(settings: AppSettings) -> int:
    """Print the effective relay configuration without secrets."""
    storage = settings.credential_db_path or "in-memory (lost on restart)"
    offset = settings.events.default_utc_offset or "none"
    print(f"Authorization links: {settings.auth_base_url}/auth?user=<key>")
    print(f"OAuth redirect URI:  {settings.google.redirect_uri}")
    print(f"Credential storage:  {storage}")
    print(f"Default UTC offset:  {offset}")
    print(f"Listen port:         {settings.listen_port}")
    return EXIT_OK


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    """Compare the current checksum to the recorded baseline."""
    if not hash_file.exists():
        print(
            f"Checksum baseline {hash_file} is missing; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate relay settings and detect .env drift."
    )
    parser.add_argument(
        "command",
        choices=("check", "record", "verify"),
        help="'check' only validates; 'record'/'verify' also manage a checksum.",
    )
    parser.add_argument(
        "--env-file",
        default=Path(".env"),
        type=Path,
        help="Path to the environment file (default: .env).",
    )
    parser.add_argument(
        "--hash-file",
        type=Path,
        help="Checksum baseline location, required for record and verify.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command != "check" and args.hash_file is None:
        parser.error(f"--hash-file is required for '{args.command}'")

    env_file: Path = args.env_file
    try:
        settings = _load_settings(env_file)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    if args.command == "record":
        return _record_checksum(env_file, args.hash_file)
    if args.command == "verify":
        return _verify_checksum(env_file, args.hash_file)
    return _describe(settings)


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())

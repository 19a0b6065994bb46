# Main Entry Point - connection vault command line
#
# Manages the encrypted connection profiles used by the desktop client.
# Store location and key strategy come from DBCLIENT_VAULT_* settings
# (see config.py); --db and --key-strategy override them.

import argparse
import getpass
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from . import __version__
from .commands import (
    AppState,
    CommandError,
    delete_connection,
    list_connections,
    load_connection,
    save_connection,
    check_connection_fields,
)
from .config import load_settings
from .vault import ConnectionProfile, DatabaseType, KeyStrategy, TLSConfig
from .vault.keys import load_or_create_key_file


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbclient-vault",
        description="Encrypted connection profile store for the database client",
    )
    parser.add_argument("--db", type=Path, help="Path to the connections database")
    parser.add_argument(
        "--key-strategy",
        choices=[s.value for s in KeyStrategy],
        help="How the encryption key is obtained (default: from settings)",
    )
    parser.add_argument("--env-file", type=Path, help="Load settings from this .env file")
    parser.add_argument(
        "--version",
        action="version",
        version=f"dbclient-vault v{__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List saved connections (name ascending)")

    show = sub.add_parser("show", help="Show one connection")
    show.add_argument("id")
    show.add_argument("--reveal", action="store_true", help="Print secrets in cleartext")

    add = sub.add_parser("add", help="Add or replace a connection")
    add.add_argument("--id", help="Profile id (default: new UUID)")
    add.add_argument("--name", required=True)
    add.add_argument("--color", default="#3b82f6")
    add.add_argument(
        "--type",
        dest="db_type",
        choices=[t.value for t in DatabaseType],
        default=DatabaseType.MYSQL.value,
    )
    add.add_argument("--host", default="localhost")
    add.add_argument("--port", type=int, help="Default: the engine's standard port")
    add.add_argument("--username", required=True)
    add.add_argument("--database")
    add.add_argument("--password", help="Prompted for when omitted")
    add.add_argument("--tls", action="store_true", help="Enable TLS with certificate verification")
    add.add_argument("--tls-ca", help="CA certificate path")

    delete = sub.add_parser("delete", help="Delete a connection")
    delete.add_argument("id")

    check = sub.add_parser("test", help="Validate a saved connection's fields")
    check.add_argument("id")

    sub.add_parser("init-key", help="Create the random key file if it does not exist")

    return parser


def _profile_from_args(args: argparse.Namespace) -> ConnectionProfile:
    kind = DatabaseType.parse(args.db_type)
    secret = args.password if args.password is not None else getpass.getpass("Database password: ")
    tls_config = None
    if args.tls or args.tls_ca:
        tls_config = TLSConfig(ca_cert=args.tls_ca, verify=True)
    fields = dict(
        name=args.name,
        color=args.color,
        kind=kind,
        host=args.host,
        port=args.port if args.port is not None else kind.default_port,
        username=args.username,
        secret=secret,
        database=args.database,
        tls_config=tls_config,
    )
    if args.id:
        return ConnectionProfile(id=args.id, **fields)
    return ConnectionProfile.new(**fields)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the dbclient-vault console script."""
    args = _build_parser().parse_args(argv)

    settings = load_settings(args.env_file)
    if args.db is not None:
        settings = replace(settings, db_path=args.db)
    if args.key_strategy is not None:
        settings = replace(settings, key_strategy=KeyStrategy.parse(args.key_strategy))

    if args.command == "init-key":
        load_or_create_key_file(settings.key_file)
        print(f"Key file ready: {settings.key_file}")
        return 0

    if settings.key_strategy == KeyStrategy.PASSWORD and not settings.password:
        settings = replace(settings, password=getpass.getpass("Vault password: "))

    try:
        state = AppState.open(settings)
    except CommandError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    try:
        if args.command == "list":
            for profile in list_connections(state):
                print(f"{profile.id}\t{profile.name}\t{profile.kind.value}\t"
                      f"{profile.username}@{profile.host}:{profile.port}")
        elif args.command == "show":
            profile = load_connection(state, args.id)
            if profile is None:
                print(f"Connection not found: {args.id}", file=sys.stderr)
                return 1
            print(json.dumps(profile.to_dict(redact=not args.reveal), indent=2))
        elif args.command == "add":
            profile = _profile_from_args(args)
            save_connection(state, profile)
            print(profile.id)
        elif args.command == "delete":
            delete_connection(state, args.id)
        elif args.command == "test":
            profile = load_connection(state, args.id)
            if profile is None:
                print(f"Connection not found: {args.id}", file=sys.stderr)
                return 1
            print(check_connection_fields(profile))
    except CommandError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    finally:
        state.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())

# Configuration - environment driven settings
#
# Settings come from DBCLIENT_VAULT_* environment variables, optionally
# seeded from a .env file in the working directory.

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .vault.keys import DEFAULT_PASSPHRASE, KeyStrategy

ENV_PREFIX = "DBCLIENT_VAULT_"

DEFAULT_DB_PATH = Path("data/connections.db")
DEFAULT_KEY_FILE = Path("data/vault.key")


@dataclass(frozen=True)
class VaultSettings:
    """Where the vault lives and how its key is obtained."""

    db_path: Path = DEFAULT_DB_PATH
    key_strategy: KeyStrategy = KeyStrategy.PLACEHOLDER
    passphrase: str = DEFAULT_PASSPHRASE
    password: Optional[str] = None
    key_file: Path = DEFAULT_KEY_FILE
    audit_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VaultSettings":
        """Build settings from environment variables (os.environ by default)."""
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        strategy = get("KEY_STRATEGY")
        audit_dir = get("AUDIT_DIR")
        return cls(
            db_path=Path(get("DB") or DEFAULT_DB_PATH),
            key_strategy=KeyStrategy.parse(strategy) if strategy else KeyStrategy.PLACEHOLDER,
            passphrase=get("PASSPHRASE") or DEFAULT_PASSPHRASE,
            password=get("PASSWORD"),
            key_file=Path(get("KEY_FILE") or DEFAULT_KEY_FILE),
            audit_dir=Path(audit_dir) if audit_dir else None,
        )


def load_settings(env_file: Optional[Path] = None) -> VaultSettings:
    """Load .env (without overriding real environment variables) and build settings."""
    if env_file is not None:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    return VaultSettings.from_env()

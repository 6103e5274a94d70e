"""Process-wide configuration loaded from environment variables.

Settings are read once at start-up and passed down explicitly; nothing
reads the environment after that.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from chainreg.crypto.keys import Keypair, Pubkey
from chainreg.errors import ConfigError

PROGRAM_ID = "Hmo7aZ3yDGYiNsme2sFfhHqrbh6x8QuqXmWeVQtqYwGa"
ORACLE_PUBKEY = "FzPR9pz93ecai3shwEh9WrSSLsskgjsm1dxV2DtnL1Se"
LOCAL_TEST_ORACLE_PUBKEY = "H8JbkMcu35zRTShU3Sy3usNnUUJymR3wHZ6XvWFPv9TY"

PRODUCTION_ORACLE_URL = "https://oracle.chainreg.dev/"
LOCAL_ORACLE_URL = "http://127.0.0.1:8081/"
DEFAULT_LEDGER_URL = "http://127.0.0.1:8899"
DEFAULT_WALLET_PATH = "~/.config/solana/id.json"
DEFAULT_LEDGER_DIR = ".chainreg_ledger"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def _env_pubkey(name: str, default: str) -> Pubkey:
    value = os.environ.get(name, "") or default
    try:
        return Pubkey.from_string(value)
    except ValueError as exc:
        raise ConfigError(f"{name} is not a valid public key: {exc}") from exc


@dataclass(frozen=True)
class Settings:
    """Client and ledger-node configuration."""

    program_id: Pubkey
    oracle_pubkey: Pubkey
    oracle_url: str
    ledger_url: str
    wallet_path: Path
    ledger_dir: Path
    local_test: bool = False
    http_timeout: float = 30.0

    @staticmethod
    def from_env(local_test: Optional[bool] = None) -> Settings:
        """Load settings; ``CHAINREG_LOCAL_TEST`` swaps in the local oracle.

        An explicit *local_test* overrides the environment toggle.
        """
        if local_test is None:
            local_test = _env_flag("CHAINREG_LOCAL_TEST")
        try:
            timeout = float(os.environ.get("CHAINREG_HTTP_TIMEOUT", "30"))
        except ValueError as exc:
            raise ConfigError(f"CHAINREG_HTTP_TIMEOUT must be a number: {exc}") from exc
        return Settings(
            program_id=_env_pubkey("CHAINREG_PROGRAM_ID", PROGRAM_ID),
            oracle_pubkey=_env_pubkey(
                "CHAINREG_ORACLE_PUBKEY",
                LOCAL_TEST_ORACLE_PUBKEY if local_test else ORACLE_PUBKEY,
            ),
            oracle_url=os.environ.get("CHAINREG_ORACLE_URL", "")
            or (LOCAL_ORACLE_URL if local_test else PRODUCTION_ORACLE_URL),
            ledger_url=os.environ.get("CHAINREG_LEDGER_URL", "") or DEFAULT_LEDGER_URL,
            wallet_path=Path(os.environ.get("CHAINREG_WALLET", "") or DEFAULT_WALLET_PATH).expanduser(),
            ledger_dir=Path(os.environ.get("CHAINREG_LEDGER_DIR", "") or DEFAULT_LEDGER_DIR),
            local_test=local_test,
            http_timeout=timeout,
        )


@dataclass(frozen=True)
class OracleSecrets:
    """Secrets the oracle service needs: its signing key and a GitHub token."""

    keypair: Keypair
    github_token: str

    @staticmethod
    def from_env() -> OracleSecrets:
        raw_keypair = os.environ.get("KEYPAIR", "")
        if not raw_keypair:
            raise ConfigError("KEYPAIR is not set (JSON byte array of the oracle keypair)")
        try:
            keypair = Keypair.from_json(raw_keypair)
        except ValueError as exc:
            raise ConfigError(f"KEYPAIR is malformed: {exc}") from exc
        token = os.environ.get("GH_TOKEN", "")
        if not token:
            raise ConfigError("GH_TOKEN is not set")
        return OracleSecrets(keypair=keypair, github_token=token)


def load_wallet(path: str | Path) -> Keypair:
    """Load a wallet keypair file; raises ``ConfigError`` if unusable."""
    wallet_path = Path(path).expanduser()
    if not wallet_path.exists():
        raise ConfigError(f"Wallet file not found: {wallet_path}")
    try:
        return Keypair.from_file(wallet_path)
    except ValueError as exc:
        raise ConfigError(f"Wallet file {wallet_path} is malformed: {exc}") from exc

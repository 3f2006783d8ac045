import json
import logging
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from solana.rpc.commitment import Commitment
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .errors import ConfigError
from .retry import RetryPolicy

LAMPORTS_PER_SOL = 1_000_000_000
DEFAULT_RPC = "http://localhost:8899"
DEFAULT_VAULT_PROGRAM_ID = "9VxcdZKmmL6xwJWZorYnD29tZte5M29XAiKv3ZEW2AJd"


class Settings(BaseSettings):
    solana_rpc: str = DEFAULT_RPC
    vault_program_id: str = DEFAULT_VAULT_PROGRAM_ID
    strategy_program_id: Optional[str] = None  # HODL vaults use the vault program itself
    vault_authority_seed: str = "vault"
    commitment: str = "confirmed"
    payer_keypair_path: Optional[str] = None
    min_payer_lamports: int = LAMPORTS_PER_SOL
    airdrop_lamports: int = 2 * LAMPORTS_PER_SOL
    funding_poll_attempts: int = 10
    funding_poll_interval: float = 0.5
    funding_poll_backoff: float = 1.0
    token_decimals: int = 6
    initial_mint_amount: int = 100
    deposit_strategy_id: int = 1
    withdraw_strategy_id: int = 2
    estimate_strategy_id: int = 3
    rpc_timeout: float = 30
    debug_crash: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def vault_program_pubkey(self) -> Pubkey:
        return load_pubkey("vault_program_id", self.vault_program_id)

    def strategy_program_pubkey(self) -> Pubkey:
        if not self.strategy_program_id:
            return self.vault_program_pubkey()
        return load_pubkey("strategy_program_id", self.strategy_program_id)

    def commitment_level(self) -> Commitment:
        return Commitment(self.commitment)

    def funding_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.funding_poll_attempts,
            interval=self.funding_poll_interval,
            backoff=self.funding_poll_backoff,
        )


def load_pubkey(name: str, value: Optional[str]) -> Pubkey:
    if not value:
        raise ConfigError(f"{name} must be set to a valid pubkey")
    try:
        return Pubkey.from_string(value)
    except Exception as exc:  # noqa: BLE001
        raise ConfigError(f"{name} is not a valid pubkey: {exc}") from exc


def load_keypair(path: Path) -> Keypair:
    if not path.exists():
        raise ConfigError(f"Missing keypair at {path}")
    try:
        raw = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Unreadable keypair file at {path}: {exc}") from exc
    if isinstance(raw, list):
        secret = raw
    elif isinstance(raw, dict) and "secretKey" in raw:
        secret = raw["secretKey"]
    else:
        raise ConfigError(f"Unsupported keypair file format at {path}")
    try:
        return Keypair.from_bytes(bytes(secret))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid keypair bytes at {path}: {exc}") from exc


def configure_logging(level: str = "INFO") -> logging.Logger:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))
    return logging.getLogger("cove")

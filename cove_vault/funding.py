import logging
import threading
from typing import Optional

from solana.rpc.api import Client
from solana.rpc.commitment import Commitment, Confirmed
from solders.pubkey import Pubkey

from .errors import FundingTimeoutError
from .retry import RetryPolicy

logger = logging.getLogger("cove.funding")

DEFAULT_FUNDING_POLICY = RetryPolicy(attempts=10, interval=0.5)


def get_balance(client: Client, account: Pubkey, commitment: Commitment = Confirmed) -> int:
    return client.get_balance(account, commitment=commitment).value


def ensure_funded(
    client: Client,
    account: Pubkey,
    minimum_balance: int,
    policy: Optional[RetryPolicy] = None,
    airdrop_lamports: Optional[int] = None,
    commitment: Commitment = Confirmed,
    cancel: Optional[threading.Event] = None,
) -> Pubkey:
    """Make sure ``account`` holds at least ``minimum_balance`` lamports.

    A single airdrop is requested when the account is short; its failure is
    only logged since the balance polling that follows decides success.
    """
    policy = policy or DEFAULT_FUNDING_POLICY
    balance = get_balance(client, account, commitment)
    if balance >= minimum_balance:
        logger.debug("funding_ok account=%s balance=%s minimum=%s", account, balance, minimum_balance)
        return account

    requested = max(airdrop_lamports or 0, minimum_balance - balance)
    logger.info("funding_airdrop_request account=%s balance=%s requested=%s", account, balance, requested)
    try:
        client.request_airdrop(account, requested, commitment=commitment)
    except Exception as exc:  # noqa: BLE001
        logger.warning("funding_airdrop_failed account=%s requested=%s error=%s", account, requested, exc, exc_info=True)

    last_seen = [balance]

    def funded() -> bool:
        last_seen[0] = get_balance(client, account, commitment)
        return last_seen[0] >= minimum_balance

    if not policy.poll(funded, cancel=cancel):
        logger.error(
            "funding_timeout account=%s balance=%s minimum=%s attempts=%s",
            account,
            last_seen[0],
            minimum_balance,
            policy.attempts,
        )
        raise FundingTimeoutError(account, requested, last_seen[0])
    logger.info("funding_complete account=%s balance=%s", account, last_seen[0])
    return account

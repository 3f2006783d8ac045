import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from solana.rpc.api import Client
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account
from solders.transaction import VersionedTransaction

from .errors import SubmissionError
from .instructions import instruction_to_dict, involved_addresses

logger = logging.getLogger("cove.submission")


@dataclass(frozen=True)
class ConfirmationReceipt:
    operation: str
    signature: str
    commitment: str
    slot: Optional[int] = None


def build_transaction(
    instructions: Sequence[Instruction],
    signers: Sequence[Keypair],
    blockhash,
    payer: Optional[Pubkey] = None,
) -> VersionedTransaction:
    fee_payer = payer or signers[0].pubkey()
    message = MessageV0.try_compile(fee_payer, list(instructions), [], blockhash)
    return VersionedTransaction(message, list(signers))


def submit(
    client: Client,
    instructions: Sequence[Instruction],
    signers: Sequence[Keypair],
    commitment: Commitment = Confirmed,
    operation: str = "transaction",
    payer: Optional[Pubkey] = None,
) -> ConfirmationReceipt:
    """Sign, send and confirm ``instructions`` as one transaction.

    Preflight simulation and confirmation use the same commitment. Errors are
    logged with the operation and its accounts, then re-raised unchanged.
    """
    if not signers:
        raise ValueError(f"{operation} needs at least one signer")
    addresses = involved_addresses(instructions)
    signature: Optional[str] = None
    try:
        blockhash = client.get_latest_blockhash(commitment).value.blockhash
        tx = build_transaction(instructions, signers, blockhash, payer)
        resp = client.send_raw_transaction(
            bytes(tx),
            opts=TxOpts(skip_confirmation=True, skip_preflight=False, preflight_commitment=commitment),
        )
        sig = resp.value
        signature = str(sig)
        logger.info("tx_sent operation=%s sig=%s", operation, signature)
        confirmation = client.confirm_transaction(sig, commitment=commitment)
        status = confirmation.value[0] if confirmation.value else None
        if status is not None and status.err is not None:
            raise SubmissionError(operation, addresses, signature, status.err)
    except Exception as exc:
        logger.error(
            "tx_failed operation=%s sig=%s addresses=%s error=%s",
            operation,
            signature,
            ",".join(addresses),
            exc,
            exc_info=True,
        )
        logger.debug(
            "tx_failed_instructions operation=%s instructions=%s",
            operation,
            json.dumps([instruction_to_dict(ix) for ix in instructions]),
        )
        raise
    slot = getattr(status, "slot", None) if status is not None else None
    logger.info("tx_confirmed operation=%s sig=%s commitment=%s slot=%s", operation, signature, commitment, slot)
    return ConfirmationReceipt(operation=operation, signature=signature, commitment=str(commitment), slot=slot)


def create_system_account(
    client: Client,
    payer: Keypair,
    space: int,
    owner: Pubkey,
    commitment: Commitment = Confirmed,
    submitter=submit,
) -> Pubkey:
    """Create a rent-exempt account of ``space`` bytes owned by ``owner``."""
    new_account = Keypair()
    lamports = client.get_minimum_balance_for_rent_exemption(space, commitment=commitment).value
    ix = create_account(
        CreateAccountParams(
            from_pubkey=payer.pubkey(),
            to_pubkey=new_account.pubkey(),
            lamports=lamports,
            space=space,
            owner=owner,
        )
    )
    signers: List[Keypair] = [payer, new_account]
    submitter(client, [ix], signers, commitment=commitment, operation="create_account")
    logger.info("account_created pubkey=%s space=%s owner=%s lamports=%s", new_account.pubkey(), space, owner, lamports)
    return new_account.pubkey()

"""Instruction builders for the Cove vault program.

The program reads its accounts by position, so every builder here emits the
account list in exactly the order the program expects. Builders never touch
the network.
"""
import base64
from typing import List, Optional, Sequence

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .layouts import (
    Deposit,
    EstimateValue,
    InitializeVault,
    Withdraw,
    WriteData,
    encode_strategy_estimate,
    encode_strategy_transfer,
    pack,
)

VAULT_PROGRAM_ID = Pubkey.from_string("9VxcdZKmmL6xwJWZorYnD29tZte5M29XAiKv3ZEW2AJd")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
SYSVAR_RENT_PUBKEY = Pubkey.from_string("SysvarRent111111111111111111111111111111111")

# Bytes allocated for a vault storage account.
VAULT_STORAGE_SIZE = 1 + 1 + 32 + 32 + 8 + 32 + 1 + 1 + 1 + 36


def build_initialize_vault_ix(
    program_id: Pubkey,
    payer: Pubkey,
    vault_storage: Pubkey,
    vault_token_account: Pubkey,
    derivative_mint: Pubkey,
    strategy_program: Pubkey,
    hodl: bool,
    deposit_strategy_id: int,
    withdraw_strategy_id: int,
    estimate_strategy_id: int,
    underlying_token_account: Optional[Pubkey] = None,
    token_program: Pubkey = TOKEN_PROGRAM_ID,
    rent_sysvar: Pubkey = SYSVAR_RENT_PUBKEY,
    debug_crash: bool = False,
) -> Instruction:
    data = pack(
        InitializeVault(
            hodl=hodl,
            deposit_strategy_id=deposit_strategy_id,
            withdraw_strategy_id=withdraw_strategy_id,
            estimate_strategy_id=estimate_strategy_id,
            debug_crash=debug_crash,
        )
    )
    accounts: List[AccountMeta] = [
        AccountMeta(pubkey=payer, is_signer=True, is_writable=False),
        AccountMeta(pubkey=vault_storage, is_signer=False, is_writable=True),
        AccountMeta(pubkey=vault_token_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=derivative_mint, is_signer=False, is_writable=True),
        AccountMeta(pubkey=token_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=strategy_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=rent_sysvar, is_signer=False, is_writable=False),
    ]
    if hodl and underlying_token_account is not None:
        accounts.append(AccountMeta(pubkey=underlying_token_account, is_signer=False, is_writable=True))
    return Instruction(program_id=program_id, data=data, accounts=accounts)


def _transfer_ix(
    program_id: Pubkey,
    data: bytes,
    token_program: Pubkey,
    source: Pubkey,
    target: Pubkey,
    extra_accounts: Sequence[AccountMeta],
) -> Instruction:
    accounts: List[AccountMeta] = [
        AccountMeta(pubkey=token_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=source, is_signer=False, is_writable=True),
        AccountMeta(pubkey=target, is_signer=False, is_writable=True),
    ]
    accounts.extend(extra_accounts)
    return Instruction(program_id=program_id, data=data, accounts=accounts)


def build_deposit_ix(
    program_id: Pubkey,
    client_underlying_account: Pubkey,
    client_derivative_account: Pubkey,
    amount: int,
    extra_accounts: Sequence[AccountMeta] = (),
    token_program: Pubkey = TOKEN_PROGRAM_ID,
    debug_crash: bool = False,
) -> Instruction:
    data = pack(Deposit(amount=amount, debug_crash=debug_crash))
    return _transfer_ix(
        program_id, data, token_program, client_underlying_account, client_derivative_account, extra_accounts
    )


def build_withdraw_ix(
    program_id: Pubkey,
    client_derivative_account: Pubkey,
    client_underlying_account: Pubkey,
    amount: int,
    extra_accounts: Sequence[AccountMeta] = (),
    token_program: Pubkey = TOKEN_PROGRAM_ID,
    debug_crash: bool = False,
) -> Instruction:
    # Source and target are swapped relative to a deposit.
    data = pack(Withdraw(amount=amount, debug_crash=debug_crash))
    return _transfer_ix(
        program_id, data, token_program, client_derivative_account, client_underlying_account, extra_accounts
    )


def deposit_extra_accounts(
    payer: Pubkey,
    vault_storage: Pubkey,
    strategy_program: Pubkey,
    vault_token_account: Pubkey,
) -> List[AccountMeta]:
    return [
        AccountMeta(pubkey=payer, is_signer=True, is_writable=False),
        AccountMeta(pubkey=vault_storage, is_signer=False, is_writable=True),
        AccountMeta(pubkey=strategy_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=vault_token_account, is_signer=False, is_writable=True),
    ]


def withdraw_extra_accounts(
    vault_authority: Pubkey,
    vault_storage: Pubkey,
    strategy_program: Pubkey,
    vault_token_account: Pubkey,
) -> List[AccountMeta]:
    return [
        AccountMeta(pubkey=vault_authority, is_signer=False, is_writable=False),
        AccountMeta(pubkey=vault_storage, is_signer=False, is_writable=False),
        AccountMeta(pubkey=strategy_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=vault_token_account, is_signer=False, is_writable=True),
    ]


def build_estimate_value_ix(
    program_id: Pubkey,
    accounts: Sequence[AccountMeta],
    debug_crash: bool = False,
) -> Instruction:
    return Instruction(
        program_id=program_id,
        data=pack(EstimateValue(debug_crash=debug_crash)),
        accounts=list(accounts),
    )


def build_write_data_ix(
    program_id: Pubkey,
    accounts: Sequence[AccountMeta],
    data: bytes = b"",
    debug_crash: bool = False,
) -> Instruction:
    return Instruction(
        program_id=program_id,
        data=pack(WriteData(data=bytes(data), debug_crash=debug_crash)),
        accounts=list(accounts),
    )


def shared_memory_accounts(shared_memory_account: Pubkey) -> List[AccountMeta]:
    return [AccountMeta(pubkey=shared_memory_account, is_signer=False, is_writable=True)]


def build_strategy_deposit_ix(
    strategy_program: Pubkey,
    instruction_id: int,
    source: Pubkey,
    target: Pubkey,
    amount: int,
    extra_accounts: Sequence[AccountMeta] = (),
    token_program: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    data = encode_strategy_transfer(instruction_id, amount)
    return _transfer_ix(strategy_program, data, token_program, source, target, extra_accounts)


def build_strategy_withdraw_ix(
    strategy_program: Pubkey,
    instruction_id: int,
    source: Pubkey,
    target: Pubkey,
    amount: int,
    extra_accounts: Sequence[AccountMeta] = (),
    token_program: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    data = encode_strategy_transfer(instruction_id, amount)
    return _transfer_ix(strategy_program, data, token_program, source, target, extra_accounts)


def build_strategy_estimate_value_ix(
    strategy_program: Pubkey,
    instruction_id: int,
    vault_program: Pubkey,
    shared_memory_account: Pubkey,
    extra_accounts: Sequence[AccountMeta] = (),
) -> Instruction:
    accounts: List[AccountMeta] = [
        AccountMeta(pubkey=vault_program, is_signer=False, is_writable=False),
        AccountMeta(pubkey=shared_memory_account, is_signer=False, is_writable=True),
    ]
    accounts.extend(extra_accounts)
    return Instruction(
        program_id=strategy_program,
        data=encode_strategy_estimate(instruction_id),
        accounts=accounts,
    )


def _meta_to_dict(meta: AccountMeta) -> dict:
    return {"pubkey": str(meta.pubkey), "is_signer": meta.is_signer, "is_writable": meta.is_writable}


def instruction_to_dict(ix: Instruction) -> dict:
    """JSON-friendly view of ``ix``, used when a failed transaction is logged."""
    data = bytes(ix.data)
    return {
        "program_id": str(ix.program_id),
        "tag": data[0] if data else None,
        "keys": [_meta_to_dict(meta) for meta in ix.accounts],
        "data": base64.b64encode(data).decode(),
    }


def involved_addresses(ixs: Sequence[Instruction]) -> List[str]:
    return [str(meta.pubkey) for ix in ixs for meta in ix.accounts]

"""End-to-end HODL vault scenario: fund, create, deposit, withdraw, verify.

Each step depends on what the previous one produced, so the flow runs
strictly in order and stops at the first error. Nothing is resumed.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from solana.rpc.api import Client
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .addresses import vault_authority
from .config import Settings
from .errors import BalanceMismatchError
from .funding import ensure_funded
from .instructions import (
    VAULT_STORAGE_SIZE,
    build_deposit_ix,
    build_initialize_vault_ix,
    build_withdraw_ix,
    deposit_extra_accounts,
    withdraw_extra_accounts,
)
from .submission import ConfirmationReceipt, create_system_account, submit
from .tokens import TokenGateway

logger = logging.getLogger("cove.flow")


class FlowState(Enum):
    UNFUNDED = "unfunded"
    FUNDED = "funded"
    VAULT_CREATED = "vault_created"
    DEPOSITED = "deposited"
    WITHDRAWN = "withdrawn"
    VERIFIED = "verified"


@dataclass(frozen=True)
class VaultHandle:
    storage: Pubkey
    vault_token_account: Pubkey
    underlying_mint: Pubkey
    derivative_mint: Pubkey
    strategy_program: Pubkey


@dataclass(frozen=True)
class ClientAccounts:
    underlying: Pubkey
    derivative: Pubkey


@dataclass
class FlowResult:
    state: FlowState
    vault: Optional[VaultHandle] = None
    receipts: List[ConfirmationReceipt] = field(default_factory=list)
    balances: Dict[str, str] = field(default_factory=dict)


class HodlVaultFlow:
    def __init__(
        self,
        client: Client,
        payer: Keypair,
        settings: Optional[Settings] = None,
        tokens: Optional[TokenGateway] = None,
        submitter: Callable[..., ConfirmationReceipt] = submit,
        account_creator: Callable[..., Pubkey] = create_system_account,
    ):
        self.client = client
        self.payer = payer
        self.settings = settings or Settings()
        self.commitment = self.settings.commitment_level()
        self.tokens = tokens or TokenGateway(client, payer, self.commitment)
        self.submitter = submitter
        self.account_creator = account_creator
        self.program_id = self.settings.vault_program_pubkey()
        self.strategy_program = self.settings.strategy_program_pubkey()
        self.state = FlowState.UNFUNDED
        self.vault: Optional[VaultHandle] = None
        self.accounts: Optional[ClientAccounts] = None
        self.deposited = 0
        self.result = FlowResult(state=self.state)

    def _transition(self, source: FlowState, target: FlowState) -> None:
        if self.state is not source:
            raise RuntimeError(f"Cannot move to {target.value} from {self.state.value}")
        logger.info("flow_transition from=%s to=%s payer=%s", source.value, target.value, self.payer.pubkey())
        self.state = target
        self.result.state = target

    def _submit(self, ixs, signers, operation: str) -> ConfirmationReceipt:
        receipt = self.submitter(self.client, ixs, signers, commitment=self.commitment, operation=operation)
        self.result.receipts.append(receipt)
        return receipt

    def _assert_balance(self, account: Pubkey, expected: str, label: str) -> None:
        actual = self.tokens.balance(account)
        self.result.balances[label] = actual
        if actual != expected:
            logger.error("balance_mismatch account=%s expected=%s actual=%s", account, expected, actual)
            raise BalanceMismatchError(account, expected, actual)

    def fund(self) -> None:
        if self.state is not FlowState.UNFUNDED:
            raise RuntimeError(f"Cannot fund the payer from {self.state.value}")
        ensure_funded(
            self.client,
            self.payer.pubkey(),
            self.settings.min_payer_lamports,
            policy=self.settings.funding_policy(),
            airdrop_lamports=self.settings.airdrop_lamports,
            commitment=self.commitment,
        )
        self._transition(FlowState.UNFUNDED, FlowState.FUNDED)

    def create_vault(self) -> VaultHandle:
        if self.state is not FlowState.FUNDED:
            raise RuntimeError(f"Cannot create a vault from {self.state.value}")
        owner = self.payer.pubkey()
        decimals = self.settings.token_decimals
        underlying_mint = self.tokens.create_mint(owner, decimals)
        client_underlying = self.tokens.create_account(underlying_mint, owner)
        self.tokens.mint_to(underlying_mint, client_underlying, self.payer, self.settings.initial_mint_amount)
        derivative_mint = self.tokens.create_mint(owner, decimals)
        client_derivative = self.tokens.create_account(derivative_mint, owner)
        # The program hands this account over to its derived authority on init.
        vault_token_account = self.tokens.create_account(underlying_mint, owner)
        storage = self.account_creator(
            self.client,
            self.payer,
            VAULT_STORAGE_SIZE,
            self.program_id,
            commitment=self.commitment,
            submitter=self.submitter,
        )
        ix = build_initialize_vault_ix(
            program_id=self.program_id,
            payer=owner,
            vault_storage=storage,
            vault_token_account=vault_token_account,
            derivative_mint=derivative_mint,
            strategy_program=self.strategy_program,
            hodl=True,
            deposit_strategy_id=self.settings.deposit_strategy_id,
            withdraw_strategy_id=self.settings.withdraw_strategy_id,
            estimate_strategy_id=self.settings.estimate_strategy_id,
            debug_crash=self.settings.debug_crash,
        )
        self._submit([ix], [self.payer], "initialize_vault")
        self.vault = VaultHandle(
            storage=storage,
            vault_token_account=vault_token_account,
            underlying_mint=underlying_mint,
            derivative_mint=derivative_mint,
            strategy_program=self.strategy_program,
        )
        self.accounts = ClientAccounts(underlying=client_underlying, derivative=client_derivative)
        self.result.vault = self.vault
        logger.info("vault_created storage=%s vault_token_account=%s", storage, vault_token_account)
        self._transition(FlowState.FUNDED, FlowState.VAULT_CREATED)
        return self.vault

    def deposit(self, amount: int) -> ConfirmationReceipt:
        if self.state is not FlowState.VAULT_CREATED:
            raise RuntimeError(f"Cannot deposit from {self.state.value}")
        vault, accounts = self.vault, self.accounts
        ix = build_deposit_ix(
            self.program_id,
            accounts.underlying,
            accounts.derivative,
            amount,
            extra_accounts=deposit_extra_accounts(
                self.payer.pubkey(), vault.storage, vault.strategy_program, vault.vault_token_account
            ),
            debug_crash=self.settings.debug_crash,
        )
        receipt = self._submit([ix], [self.payer], "deposit")
        self._assert_balance(vault.vault_token_account, str(amount), "after_deposit")
        self.deposited = amount
        self._transition(FlowState.VAULT_CREATED, FlowState.DEPOSITED)
        return receipt

    def withdraw(self, amount: int) -> ConfirmationReceipt:
        if self.state is not FlowState.DEPOSITED:
            raise RuntimeError(f"Cannot withdraw from {self.state.value}")
        vault, accounts = self.vault, self.accounts
        authority = vault_authority(self.program_id, self.settings.vault_authority_seed.encode())
        ix = build_withdraw_ix(
            self.program_id,
            accounts.derivative,
            accounts.underlying,
            amount,
            extra_accounts=withdraw_extra_accounts(
                authority, vault.storage, vault.strategy_program, vault.vault_token_account
            ),
            debug_crash=self.settings.debug_crash,
        )
        receipt = self._submit([ix], [self.payer], "withdraw")
        self._assert_balance(vault.vault_token_account, str(self.deposited - amount), "after_withdraw")
        self._transition(FlowState.DEPOSITED, FlowState.WITHDRAWN)
        return receipt

    def run(self, amount: int = 10) -> FlowResult:
        self.fund()
        self.create_vault()
        self.deposit(amount)
        self.withdraw(amount)
        self._transition(FlowState.WITHDRAWN, FlowState.VERIFIED)
        return self.result

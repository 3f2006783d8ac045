from collections import defaultdict
from unittest.mock import MagicMock

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from cove_vault.config import Settings
from cove_vault.errors import BalanceMismatchError, SubmissionError
from cove_vault.flow import FlowState, HodlVaultFlow
from cove_vault.instructions import VAULT_STORAGE_SIZE
from cove_vault.layouts import Deposit, InitializeVault, Withdraw, decode
from cove_vault.submission import ConfirmationReceipt


class FakeTokens:
    def __init__(self):
        self.balances = defaultdict(int)
        self.mints = []

    def create_mint(self, authority=None, decimals=6):
        mint = Pubkey.new_unique()
        self.mints.append(mint)
        return mint

    def create_account(self, mint, owner):
        return Pubkey.new_unique()

    def mint_to(self, mint, dest, authority, amount):
        self.balances[dest] += amount
        return "mint-sig"

    def balance(self, account):
        return str(self.balances[account])


class FakeVaultProgram:
    """Moves underlying tokens the way a HODL vault settles deposits and withdrawals."""

    def __init__(self, tokens, skim=0):
        self.tokens = tokens
        self.skim = skim
        self.operations = []

    def __call__(self, client, ixs, signers, commitment=None, operation="transaction"):
        for ix in ixs:
            instruction = decode(bytes(ix.data))
            keys = [meta.pubkey for meta in ix.accounts]
            if isinstance(instruction, Deposit):
                self._move(keys[1], keys[6], instruction.amount - self.skim, operation)
            elif isinstance(instruction, Withdraw):
                self._move(keys[6], keys[2], instruction.amount, operation)
            else:
                assert isinstance(instruction, InitializeVault)
        self.operations.append(operation)
        return ConfirmationReceipt(operation=operation, signature=f"sig-{operation}", commitment=str(commitment))

    def _move(self, source, target, amount, operation):
        if self.tokens.balances[source] < amount:
            raise SubmissionError(operation, [str(source)], None, "insufficient funds")
        self.tokens.balances[source] -= amount
        self.tokens.balances[target] += amount


def storage_creator(client, payer, space, owner, commitment=None, submitter=None):
    assert space == VAULT_STORAGE_SIZE
    return Pubkey.new_unique()


def funded_client():
    client = MagicMock()
    client.get_balance.return_value = MagicMock(value=10**10)
    return client


def make_flow(skim=0, **overrides):
    tokens = FakeTokens()
    program = FakeVaultProgram(tokens, skim=skim)
    settings = Settings(_env_file=None, funding_poll_attempts=2, funding_poll_interval=0, **overrides)
    flow = HodlVaultFlow(
        funded_client(),
        Keypair(),
        settings=settings,
        tokens=tokens,
        submitter=program,
        account_creator=storage_creator,
    )
    return flow, tokens, program


def test_happy_path_round_trips_ten_tokens():
    flow, tokens, program = make_flow()
    result = flow.run(10)

    assert result.state is FlowState.VERIFIED
    assert result.balances == {"after_deposit": "10", "after_withdraw": "0"}
    assert program.operations == ["initialize_vault", "deposit", "withdraw"]
    assert [r.operation for r in result.receipts] == program.operations
    assert tokens.balances[flow.accounts.underlying] == 100
    flow.client.request_airdrop.assert_not_called()


def test_initialize_vault_uses_configured_strategy_ids():
    captured = []
    flow, tokens, program = make_flow(deposit_strategy_id=4, withdraw_strategy_id=5, estimate_strategy_id=6)

    def recording(client, ixs, signers, **kwargs):
        captured.extend(ixs)
        return program(client, ixs, signers, **kwargs)

    flow.submitter = recording
    flow.fund()
    flow.create_vault()
    init = decode(bytes(captured[0].data))
    assert init == InitializeVault(hodl=True, deposit_strategy_id=4, withdraw_strategy_id=5, estimate_strategy_id=6)
    assert len(tokens.mints) == 2


def test_overdraft_deposit_fails_at_submission():
    flow, tokens, _ = make_flow()
    flow.fund()
    flow.create_vault()
    with pytest.raises(SubmissionError):
        flow.deposit(1_000)
    assert flow.state is FlowState.VAULT_CREATED
    assert tokens.balances[flow.vault.vault_token_account] == 0


def test_balance_mismatch_stops_the_flow():
    flow, _, _ = make_flow(skim=1)
    with pytest.raises(BalanceMismatchError) as excinfo:
        flow.run(10)
    assert (excinfo.value.expected, excinfo.value.actual) == ("10", "9")
    assert flow.state is FlowState.VAULT_CREATED


def test_steps_must_run_in_order():
    flow, _, _ = make_flow()
    with pytest.raises(RuntimeError):
        flow.deposit(10)
    with pytest.raises(RuntimeError):
        flow.create_vault()
    flow.fund()
    with pytest.raises(RuntimeError):
        flow.withdraw(10)


def test_funding_twice_fails_before_touching_the_network():
    flow, _, _ = make_flow()
    flow.fund()
    flow.client.get_balance.reset_mock()
    flow.client.get_balance.return_value = MagicMock(value=0)
    with pytest.raises(RuntimeError):
        flow.fund()
    flow.client.get_balance.assert_not_called()
    flow.client.request_airdrop.assert_not_called()
    assert flow.state is FlowState.FUNDED

import os

import pytest
from solana.rpc.api import Client
from solders.keypair import Keypair

from cove_vault.config import Settings
from cove_vault.flow import FlowState, HodlVaultFlow

RPC = os.environ.get("COVE_E2E_RPC")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not RPC, reason="COVE_E2E_RPC not set; needs a validator with the vault program deployed"),
]


def test_hodl_vault_round_trip_on_validator():
    settings = Settings(solana_rpc=RPC)
    client = Client(settings.solana_rpc, commitment=settings.commitment_level(), timeout=settings.rpc_timeout)
    result = HodlVaultFlow(client, Keypair(), settings=settings).run(10)
    assert result.state is FlowState.VERIFIED
    assert result.balances == {"after_deposit": "10", "after_withdraw": "0"}

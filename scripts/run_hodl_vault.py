#!/usr/bin/env python3
"""
Run the HODL vault scenario against a cluster with the vault program deployed.

- Funds the payer (airdrop on local/dev clusters).
- Creates an underlying mint, a derivative mint and the client/vault token accounts.
- Initializes a HODL vault, deposits AMOUNT and withdraws it again.
- Prints a JSON summary of the accounts, signatures and observed balances.

Configuration comes from the environment / .env (see cove_vault.config.Settings).
"""

import json
import sys
from pathlib import Path

from solana.rpc.api import Client
from solders.keypair import Keypair

from cove_vault.config import Settings, configure_logging, load_keypair
from cove_vault.flow import HodlVaultFlow


def main() -> None:
    settings = Settings()
    logger = configure_logging(settings.log_level)
    amount = int(sys.argv[1]) if len(sys.argv) > 1 else 10
    if settings.payer_keypair_path:
        payer = load_keypair(Path(settings.payer_keypair_path))
    else:
        payer = Keypair()
    client = Client(settings.solana_rpc, commitment=settings.commitment_level(), timeout=settings.rpc_timeout)
    logger.info("hodl_vault_run rpc=%s payer=%s amount=%s", settings.solana_rpc, payer.pubkey(), amount)

    flow = HodlVaultFlow(client, payer, settings)
    result = flow.run(amount)

    vault = result.vault
    summary = {
        "state": result.state.value,
        "payer": str(payer.pubkey()),
        "vault": {
            "storage": str(vault.storage),
            "vault_token_account": str(vault.vault_token_account),
            "underlying_mint": str(vault.underlying_mint),
            "derivative_mint": str(vault.derivative_mint),
            "strategy_program": str(vault.strategy_program),
        },
        "receipts": [
            {"operation": r.operation, "signature": r.signature, "slot": r.slot} for r in result.receipts
        ],
        "balances": result.balances,
    }
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()

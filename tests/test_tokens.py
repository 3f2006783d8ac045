from unittest.mock import MagicMock, patch

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from cove_vault.tokens import TokenGateway


def test_create_mint_caches_token_client():
    client, payer = MagicMock(), Keypair()
    mint = Pubkey.new_unique()
    account = Pubkey.new_unique()
    with patch("cove_vault.tokens.Token") as token_cls:
        token = token_cls.create_mint.return_value
        token.pubkey = mint
        token.create_account.return_value = account
        gateway = TokenGateway(client, payer)

        assert gateway.create_mint(decimals=0) == mint
        assert gateway.create_account(mint, payer.pubkey()) == account

    assert token_cls.create_mint.call_args.kwargs["mint_authority"] == payer.pubkey()
    assert token_cls.create_mint.call_args.kwargs["decimals"] == 0
    token_cls.assert_not_called()


def test_mint_to_returns_signature_string():
    client, payer = MagicMock(), Keypair()
    with patch("cove_vault.tokens.Token") as token_cls:
        token_cls.return_value.mint_to.return_value = MagicMock(value="5sig")
        gateway = TokenGateway(client, payer)
        assert gateway.mint_to(Pubkey.new_unique(), Pubkey.new_unique(), payer, 100) == "5sig"
    assert token_cls.return_value.mint_to.call_args.args[2] == 100


def test_balance_reads_raw_amount():
    client = MagicMock()
    client.get_token_account_balance.return_value = MagicMock(value=MagicMock(amount="10"))
    assert TokenGateway(client, Keypair()).balance(Pubkey.new_unique()) == "10"

import logging
from typing import Dict, Optional

from solana.rpc.api import Client
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.client import Token
from spl.token.constants import TOKEN_PROGRAM_ID

logger = logging.getLogger("cove.tokens")


class TokenGateway:
    """SPL token operations used by vault flows, paid for by ``payer``."""

    def __init__(self, client: Client, payer: Keypair, commitment: Commitment = Confirmed):
        self.client = client
        self.payer = payer
        self.commitment = commitment
        self._tokens: Dict[Pubkey, Token] = {}

    def _token(self, mint: Pubkey) -> Token:
        token = self._tokens.get(mint)
        if token is None:
            token = Token(self.client, mint, TOKEN_PROGRAM_ID, self.payer)
            self._tokens[mint] = token
        return token

    def create_mint(self, authority: Optional[Pubkey] = None, decimals: int = 6) -> Pubkey:
        token = Token.create_mint(
            self.client,
            payer=self.payer,
            mint_authority=authority or self.payer.pubkey(),
            decimals=decimals,
            program_id=TOKEN_PROGRAM_ID,
            skip_confirmation=False,
        )
        self._tokens[token.pubkey] = token
        logger.info("mint_created mint=%s decimals=%s", token.pubkey, decimals)
        return token.pubkey

    def create_account(self, mint: Pubkey, owner: Pubkey) -> Pubkey:
        account = self._token(mint).create_account(owner, skip_confirmation=False)
        logger.info("token_account_created account=%s mint=%s owner=%s", account, mint, owner)
        return account

    def mint_to(self, mint: Pubkey, dest: Pubkey, authority: Keypair, amount: int) -> str:
        resp = self._token(mint).mint_to(
            dest,
            authority,
            amount,
            opts=TxOpts(skip_confirmation=False, preflight_commitment=self.commitment),
        )
        logger.info("mint_to mint=%s dest=%s amount=%s sig=%s", mint, dest, amount, resp.value)
        return str(resp.value)

    def balance(self, account: Pubkey) -> str:
        """Raw token amount as the node reports it, e.g. ``"10"``."""
        return self.client.get_token_account_balance(account, commitment=self.commitment).value.amount

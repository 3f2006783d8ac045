import json

import pytest
from solders.keypair import Keypair

from cove_vault.config import DEFAULT_VAULT_PROGRAM_ID, Settings, load_keypair, load_pubkey
from cove_vault.errors import ConfigError


def test_defaults(monkeypatch):
    monkeypatch.delenv("VAULT_PROGRAM_ID", raising=False)
    monkeypatch.delenv("STRATEGY_PROGRAM_ID", raising=False)
    settings = Settings(_env_file=None)
    assert str(settings.vault_program_pubkey()) == DEFAULT_VAULT_PROGRAM_ID
    assert settings.strategy_program_pubkey() == settings.vault_program_pubkey()
    assert settings.commitment_level() == "confirmed"
    assert settings.funding_policy().attempts == 10


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SOLANA_RPC", "http://validator:8899")
    monkeypatch.setenv("DEPOSIT_STRATEGY_ID", "7")
    settings = Settings(_env_file=None)
    assert settings.solana_rpc == "http://validator:8899"
    assert settings.deposit_strategy_id == 7


def test_load_pubkey_rejects_garbage():
    with pytest.raises(ConfigError):
        load_pubkey("vault_program_id", "not-a-key")
    with pytest.raises(ConfigError):
        load_pubkey("vault_program_id", "")


@pytest.mark.parametrize("wrap", [lambda raw: raw, lambda raw: {"secretKey": raw}])
def test_load_keypair_formats(tmp_path, wrap):
    keypair = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(wrap(list(bytes(keypair)))))
    assert load_keypair(path).pubkey() == keypair.pubkey()


def test_load_keypair_missing(tmp_path):
    with pytest.raises(ConfigError):
        load_keypair(tmp_path / "absent.json")


@pytest.mark.parametrize("content", ["{not json", json.dumps([1, 2, 3]), json.dumps({"secretKey": [0] * 10})])
def test_load_keypair_rejects_malformed_files(tmp_path, content):
    path = tmp_path / "id.json"
    path.write_text(content)
    with pytest.raises(ConfigError):
        load_keypair(path)

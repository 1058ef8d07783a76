"""Unit tests for settings validation."""

import pytest
from pydantic import ValidationError

from budget_indexer.config.settings import Settings

BASE = {
    "database_url": "sqlite+aiosqlite:///:memory:",
    "token_contract_address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    "environment": "test",
}


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **{**BASE, **overrides})


class TestSettings:
    """Tests for Settings."""

    def test_addresses_are_lowercased(self):
        config = _settings()

        assert config.token_contract_address == (
            "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
        )

    @pytest.mark.parametrize(
        "address",
        [
            "833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            "0x1234",
            "0xZZ3589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        ],
    )
    def test_invalid_address_rejected(self, address):
        with pytest.raises(ValidationError):
            _settings(token_contract_address=address)

    def test_unsupported_database_rejected(self):
        with pytest.raises(ValidationError):
            _settings(database_url="mysql://localhost/indexer")

    def test_rpc_url_must_be_http(self):
        with pytest.raises(ValidationError):
            _settings(rpc_url="ws://localhost:8546")

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            _settings(batch_size=0)

    def test_start_block_is_earliest_contract_start(self):
        config = _settings(factory_start_block=500, token_start_block=300)

        assert config.start_block == 300

    def test_tracked_contracts(self):
        config = _settings()

        assert config.tracked_contracts == [
            config.factory_contract_address,
            config.token_contract_address,
        ]

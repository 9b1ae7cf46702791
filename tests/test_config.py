"""
Tests for configuration, ABIs and wiring
"""

import json

import pytest
from unittest.mock import Mock
from pydantic import ValidationError

from platformq_arc import (
    ArcSettings, ContractNotFoundError, INT_VOTE_INTERFACE_ABI, VotingMachineService,
    create_context, get_settings, load_abi
)
from platformq_arc.abi import event_names

from conftest import VOTING_MACHINE


class TestArcSettings:
    """Environment-driven settings"""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ARC_EVENT_POLL_INTERVAL", raising=False)
        settings = ArcSettings()

        assert settings.suppress_duplicate_events is True
        assert settings.max_tracked_transactions is None
        assert settings.tx_receipts_topic == "txReceipts"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("ARC_EVENT_POLL_INTERVAL", "0.5")
        monkeypatch.setenv("ARC_MAX_TRACKED_TRANSACTIONS", "100")

        settings = ArcSettings()

        assert settings.event_poll_interval == 0.5
        assert settings.max_tracked_transactions == 100

    @pytest.mark.parametrize("field,value", [
        ("max_tracked_transactions", 0),
        ("event_poll_interval", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            ArcSettings(**{field: value})

    def test_get_settings_cached(self):
        get_settings.cache_clear()

        assert get_settings() is get_settings()


class TestAbi:
    """Bundled and loaded ABIs"""

    def test_bundled_events(self):
        assert set(event_names(INT_VOTE_INTERFACE_ABI)) == {
            "NewProposal", "ExecuteProposal", "VoteProposal", "CancelProposal", "CancelVoting"
        }

    def test_load_artifact(self, tmp_path):
        path = tmp_path / "GenesisProtocol.json"
        path.write_text(json.dumps({"contractName": "GenesisProtocol", "abi": INT_VOTE_INTERFACE_ABI}))

        assert load_abi(path) == INT_VOTE_INTERFACE_ABI

    def test_load_bare_abi(self, tmp_path):
        path = tmp_path / "abi.json"
        path.write_text(json.dumps(INT_VOTE_INTERFACE_ABI[:2]))

        assert len(load_abi(str(path))) == 2

    def test_missing_artifact(self, tmp_path):
        with pytest.raises(ContractNotFoundError):
            load_abi(tmp_path / "missing.json")

    def test_artifact_without_abi(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"contractName": "Empty"}))

        with pytest.raises(ContractNotFoundError):
            load_abi(path)


class TestContext:
    """Service wiring"""

    def test_context_without_ledger(self, settings):
        context = create_context(settings)

        assert context.transaction_service.bus is context.bus
        assert context.voting_machine_factory is None

    def test_contexts_do_not_share_bus(self, settings):
        assert create_context(settings).bus is not create_context(settings).bus

    def test_context_with_ledger(self, settings):
        provider = Mock()
        context = create_context(settings, provider)

        service = context.voting_machine_factory.create(VOTING_MACHINE)

        assert isinstance(service, VotingMachineService)
        provider.int_vote_contract.assert_called_once_with(service.address)

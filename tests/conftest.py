"""
Pytest configuration and stub ledger collaborators
"""

import pytest
from unittest.mock import AsyncMock, Mock

from platformq_arc import ArcSettings, DecodedLogEntry, PubSubEventService


AVATAR = "0x" + "a1" * 20
OTHER_AVATAR = "0x" + "b2" * 20
VOTING_MACHINE = "0x" + "c3" * 20


def make_log(tx_hash, event="NewProposal", **args):
    """Decoded log entry for tests"""
    return DecodedLogEntry(event=event, args=args, transaction_hash=tx_hash)


class FakeRawFilter:
    """Raw event filter whose watch deliveries are driven by the test"""

    def __init__(self, arg_filter, options, logs=None, error=None):
        self.arg_filter = arg_filter
        self.options = options
        self.logs = logs if logs is not None else []
        self.error = error
        self.callback = None
        self.stop_calls = 0

    async def get(self):
        if self.error is not None:
            raise self.error
        return self.logs

    def watch(self, callback):
        self.callback = callback

    def stop_watching(self):
        self.stop_calls += 1

    async def emit(self, error=None, log=None):
        await self.callback(error, log)


class FakeEventSource:
    """Contract event stub recording every filter it creates"""

    def __init__(self, logs=None, error=None):
        self.logs = logs
        self.error = error
        self.filters = []

    def __call__(self, arg_filter, options):
        raw_filter = FakeRawFilter(arg_filter, options, self.logs, self.error)
        self.filters.append(raw_filter)
        return raw_filter

    @property
    def last(self):
        return self.filters[-1]


def make_int_vote_contract(votable=True, number_of_choices=2, abstain_allowed=False,
                           statuses=None, receipt=None):
    """IntVoteInterface stub built from AsyncMocks"""
    statuses = statuses or {}
    receipt = receipt if receipt is not None else {"transactionHash": "0x" + "ee" * 32, "logs": []}

    contract = Mock()
    for name in ("propose", "cancel_proposal", "owner_vote", "vote",
                 "vote_with_specified_amounts", "cancel_vote", "execute"):
        setattr(contract, name, AsyncMock(return_value=receipt))

    if callable(votable):
        contract.is_votable = AsyncMock(side_effect=votable)
    else:
        contract.is_votable = AsyncMock(return_value=votable)
    contract.get_number_of_choices = AsyncMock(return_value=number_of_choices)
    contract.is_abstain_allow = AsyncMock(return_value=abstain_allowed)
    contract.vote_status = AsyncMock(side_effect=lambda proposal_id, choice: statuses.get(choice, 0))
    return contract


@pytest.fixture
def settings():
    """Settings independent of the environment"""
    return ArcSettings(
        default_from_block="latest",
        suppress_duplicate_events=True,
        max_tracked_transactions=None,
        event_poll_interval=2.0,
        tx_receipts_topic="txReceipts",
    )


@pytest.fixture
def event_source():
    return FakeEventSource()


@pytest.fixture
def bus():
    return PubSubEventService()

"""
Application wiring.

Services take their bus and collaborators as constructor arguments; this
module assembles one consistent set of them. ``get_default_context`` is the
only place a process-wide bus exists.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from .adapters.web3_adapter import Web3ContractProvider
from .config import ArcSettings, get_settings
from .proposal_service import ProposalService
from .pubsub import PubSubEventService
from .transaction_service import TransactionService
from .voting_machine import VotingMachineServiceFactory

logger = logging.getLogger(__name__)


@dataclass
class ArcContext:
    """Services sharing one settings object, bus and ledger connection"""
    settings: ArcSettings
    bus: PubSubEventService
    transaction_service: TransactionService
    proposal_service: ProposalService
    contract_provider: Optional[Web3ContractProvider] = None
    voting_machine_factory: Optional[VotingMachineServiceFactory] = None


def create_context(settings: Optional[ArcSettings] = None,
                   contract_provider: Optional[Web3ContractProvider] = None,
                   bus: Optional[PubSubEventService] = None) -> ArcContext:
    """
    Build an ArcContext. Ledger-backed services are only created when a
    contract provider is given.
    """
    settings = settings or get_settings()
    bus = bus or PubSubEventService()
    voting_machine_factory = None
    if contract_provider is not None:
        voting_machine_factory = VotingMachineServiceFactory(contract_provider.int_vote_contract)

    return ArcContext(
        settings=settings,
        bus=bus,
        transaction_service=TransactionService(bus, settings),
        proposal_service=ProposalService(),
        contract_provider=contract_provider,
        voting_machine_factory=voting_machine_factory,
    )


@lru_cache()
def get_default_context() -> ArcContext:
    """Process-wide context connected to the configured ledger"""
    settings = get_settings()
    logger.info("Creating default Arc context")
    return create_context(settings, Web3ContractProvider.from_settings(settings))

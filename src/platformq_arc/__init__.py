"""
PlatformQ Arc Access Library

Event fetching, voting machine and transaction tracking services for
Arc-style DAO contracts.
"""

from .types import (
    Address,
    Hash,
    DecodedLogEntry,
    InvocationKey,
    TransactionEventEnvelope,
    ArcTransactionResult,
    ArcTransactionProposalResult,
    ArcError,
    InvalidArgumentError,
    UnsupportedOperationError,
    ContractNotFoundError
)

from .interfaces import (
    IRawEventFilter,
    IContractEvent,
    IIntVoteContract,
    IProposalGenerator
)

from .models import (
    EventFetcherOptions,
    VotableProposal,
    GetProposalsOptions
)

from .config import ArcSettings, get_settings
from .abi import INT_VOTE_INTERFACE_ABI, load_abi

from .event_fetcher import (
    EventFetcher,
    EventFetcherFactory,
    create_event_fetcher_factory
)

from .entity_fetcher import (
    EntityFetcher,
    EntityFetcherFactory,
    create_entity_fetcher_factory,
    pipe_entity_fetcher_factory
)

from .voting_machine import (
    VotingMachineService,
    ProposalVotingMachineService,
    VotingMachineServiceFactory
)

from .proposal_service import ProposalService, SchemeProposalService
from .pubsub import PubSubEventService, EventSubscription
from .transaction_service import TransactionService
from .context import ArcContext, create_context, get_default_context

from .adapters import (
    Web3ContractEvent,
    Web3ContractProvider,
    Web3EventFilter,
    Web3IntVoteContract
)

__all__ = [
    # Types
    "Address",
    "Hash",
    "DecodedLogEntry",
    "InvocationKey",
    "TransactionEventEnvelope",
    "ArcTransactionResult",
    "ArcTransactionProposalResult",
    "ArcError",
    "InvalidArgumentError",
    "UnsupportedOperationError",
    "ContractNotFoundError",

    # Interfaces
    "IRawEventFilter",
    "IContractEvent",
    "IIntVoteContract",
    "IProposalGenerator",

    # Models
    "EventFetcherOptions",
    "VotableProposal",
    "GetProposalsOptions",

    # Config & ABI
    "ArcSettings",
    "get_settings",
    "INT_VOTE_INTERFACE_ABI",
    "load_abi",

    # Fetchers
    "EventFetcher",
    "EventFetcherFactory",
    "create_event_fetcher_factory",
    "EntityFetcher",
    "EntityFetcherFactory",
    "create_entity_fetcher_factory",
    "pipe_entity_fetcher_factory",

    # Services
    "VotingMachineService",
    "ProposalVotingMachineService",
    "VotingMachineServiceFactory",
    "ProposalService",
    "SchemeProposalService",
    "PubSubEventService",
    "EventSubscription",
    "TransactionService",

    # Wiring
    "ArcContext",
    "create_context",
    "get_default_context",

    # Adapters
    "Web3ContractEvent",
    "Web3ContractProvider",
    "Web3EventFilter",
    "Web3IntVoteContract"
]

__version__ = "1.0.0"

"""
Interfaces (protocols) for the ledger-access collaborators.
Using Python's Protocol for structural subtyping.
"""

from typing import Protocol, Dict, Any, Optional, List, Mapping, Union, Callable, Awaitable, Sequence
from abc import abstractmethod

from .types import Address, Hash, DecodedLogEntry

RawLog = Union[DecodedLogEntry, Sequence[DecodedLogEntry]]
RawEventCallback = Callable[[Optional[Exception], RawLog], Awaitable[None]]
TxReceipt = Mapping[str, Any]


class IRawEventFilter(Protocol):
    """A filtered view of one contract event type on the ledger"""

    @abstractmethod
    async def get(self) -> RawLog:
        """Fetch matching logs over the configured block range"""
        ...

    @abstractmethod
    def watch(self, callback: RawEventCallback) -> None:
        """Start delivering new matching logs to ``callback``"""
        ...

    @abstractmethod
    def stop_watching(self) -> None:
        """Stop delivering logs"""
        ...


class IContractEvent(Protocol):
    """A contract event type that can be filtered by argument and block range"""

    @abstractmethod
    def __call__(self, arg_filter: Dict[str, Any],
                 filter_options: Dict[str, Any]) -> IRawEventFilter:
        ...


class IIntVoteContract(Protocol):
    """The Arc ``IntVoteInterface`` contract as seen by the voting machine service"""

    @abstractmethod
    async def propose(self, num_of_choices: int, proposal_parameters: Hash,
                      avatar: Address, executable: Address) -> TxReceipt:
        ...

    @abstractmethod
    async def cancel_proposal(self, proposal_id: Hash) -> TxReceipt:
        ...

    @abstractmethod
    async def owner_vote(self, proposal_id: Hash, vote: int, voter: Address) -> TxReceipt:
        ...

    @abstractmethod
    async def vote(self, proposal_id: Hash, vote: int,
                   from_address: Optional[Address] = None) -> TxReceipt:
        ...

    @abstractmethod
    async def vote_with_specified_amounts(self, proposal_id: Hash, vote: int,
                                          reputation: int, tokens: int) -> TxReceipt:
        ...

    @abstractmethod
    async def cancel_vote(self, proposal_id: Hash) -> TxReceipt:
        ...

    @abstractmethod
    async def execute(self, proposal_id: Hash) -> TxReceipt:
        ...

    @abstractmethod
    async def get_number_of_choices(self, proposal_id: Hash) -> int:
        ...

    @abstractmethod
    async def is_votable(self, proposal_id: Hash) -> bool:
        ...

    @abstractmethod
    async def vote_status(self, proposal_id: Hash, choice: int) -> int:
        ...

    @abstractmethod
    async def is_abstain_allow(self) -> bool:
        ...


class IProposalGenerator(Protocol):
    """
    Scheme-specific knowledge needed to read proposals.

    Schemes disagree on how the on-chain proposal struct is read, so the
    scheme wrapper supplies the reader and the converter.
    """

    proposals_event_fetcher: Any

    @abstractmethod
    async def get_proposal(self, avatar_address: Address, proposal_id: Hash,
                           event_args: Dict[str, Any]) -> List[Any]:
        """Return the raw positional fields of the proposal struct"""
        ...

    @abstractmethod
    def convert_to_proposal(self, proposal_params: List[Any], avatar_address: Address,
                            proposal_id: Hash, event_args: Dict[str, Any]) -> Any:
        """Convert the positional fields to a proposal object"""
        ...

    @abstractmethod
    async def get_voting_machine_address(self, avatar_address: Address) -> Address:
        ...

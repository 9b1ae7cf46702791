"""
Voting machine services.

``VotingMachineService`` gives a uniform interface over any contract that
implements Arc's ``IntVoteInterface`` (AbsoluteVote, QuorumVote,
GenesisProtocol, ...). Transactions return ``ArcTransactionResult`` instead
of the raw receipt.
"""

import logging
from typing import Callable, List, Optional

from .interfaces import IIntVoteContract
from .types import (
    Address, Hash, ArcTransactionResult, ArcTransactionProposalResult,
    InvalidArgumentError
)
from .utils import normalize_address, require, validate_choice

logger = logging.getLogger(__name__)


class VotingMachineService:
    """Services of one voting machine contract"""

    def __init__(self, contract: IIntVoteContract, address: Optional[Address] = None):
        self.contract = contract
        self.address = address

    def _log_call(self, method: str, **params) -> None:
        logger.debug(f"VotingMachine({self.address}).{method} {params}")

    async def propose(self, number_of_choices: int, parameters_hash: Hash,
                      avatar_address: Address, executable: Address) -> ArcTransactionProposalResult:
        """Create a proposal on the voting machine"""
        require(avatar_address, "avatar")
        require(parameters_hash, "proposalParameters")
        require(executable, "execute")
        if isinstance(number_of_choices, bool) or not isinstance(number_of_choices, int):
            raise InvalidArgumentError("numOfChoices must be a number")

        self._log_call("propose", number_of_choices=number_of_choices,
                       parameters_hash=parameters_hash, avatar=avatar_address)
        tx = await self.contract.propose(number_of_choices, parameters_hash, avatar_address, executable)
        return ArcTransactionProposalResult(tx)

    async def cancel_proposal(self, proposal_id: Hash) -> ArcTransactionResult:
        require(proposal_id, "proposalId")
        self._log_call("cancel_proposal", proposal_id=proposal_id)
        return ArcTransactionResult(await self.contract.cancel_proposal(proposal_id))

    async def owner_vote(self, proposal_id: Hash, choice: int, voter_address: Address) -> ArcTransactionResult:
        """Vote on behalf of ``voter_address``; only the proposal owner may do this"""
        require(proposal_id, "proposalId")
        validate_choice(choice)
        require(voter_address, "voterAddress")
        self._log_call("owner_vote", proposal_id=proposal_id, choice=choice, voter=voter_address)
        return ArcTransactionResult(await self.contract.owner_vote(proposal_id, choice, voter_address))

    async def vote(self, proposal_id: Hash, choice: int,
                   on_behalf_of: Optional[Address] = None) -> ArcTransactionResult:
        require(proposal_id, "proposalId")
        validate_choice(choice)
        self._log_call("vote", proposal_id=proposal_id, choice=choice, on_behalf_of=on_behalf_of)
        return ArcTransactionResult(await self.contract.vote(proposal_id, choice, on_behalf_of))

    async def vote_with_specified_amounts(self, proposal_id: Hash, choice: int,
                                          reputation: int) -> ArcTransactionResult:
        """Vote with the given amount of reputation"""
        require(proposal_id, "proposalId")
        validate_choice(choice)
        self._log_call("vote_with_specified_amounts", proposal_id=proposal_id,
                       choice=choice, reputation=reputation)
        # the tokens argument is ignored by the contracts
        return ArcTransactionResult(
            await self.contract.vote_with_specified_amounts(proposal_id, choice, reputation, 0))

    async def cancel_vote(self, proposal_id: Hash) -> ArcTransactionResult:
        require(proposal_id, "proposalId")
        self._log_call("cancel_vote", proposal_id=proposal_id)
        return ArcTransactionResult(await self.contract.cancel_vote(proposal_id))

    async def execute(self, proposal_id: Hash) -> ArcTransactionResult:
        """Attempt to execute the proposal"""
        require(proposal_id, "proposalId")
        self._log_call("execute", proposal_id=proposal_id)
        return ArcTransactionResult(await self.contract.execute(proposal_id))

    async def get_number_of_choices(self, proposal_id: Hash) -> int:
        require(proposal_id, "proposalId")
        return int(await self.contract.get_number_of_choices(proposal_id))

    async def is_votable(self, proposal_id: Hash) -> bool:
        """Whether the proposal is in a state where it can be voted on"""
        require(proposal_id, "proposalId")
        return bool(await self.contract.is_votable(proposal_id))

    async def vote_status(self, proposal_id: Hash, choice: int) -> int:
        """Reputation currently voted on ``choice``"""
        require(proposal_id, "proposalId")
        validate_choice(choice)
        return int(await self.contract.vote_status(proposal_id, choice))

    async def is_abstain_allow(self) -> bool:
        return bool(await self.contract.is_abstain_allow())

    async def get_vote_statuses(self, proposal_id: Hash) -> List[int]:
        """
        Reputation voted on every choice, indexed by choice.

        Choice 0 (abstain) is always present. When the machine does not allow
        abstaining it is not queried and reads as 0.
        """
        require(proposal_id, "proposalId")
        number_of_choices = int(await self.contract.get_number_of_choices(proposal_id))
        abstain_allowed = await self.is_abstain_allow()

        statuses = [0]
        if abstain_allowed:
            statuses[0] = int(await self.contract.vote_status(proposal_id, 0))
        for choice in range(1, number_of_choices + 1):
            statuses.append(int(await self.contract.vote_status(proposal_id, choice)))
        return statuses


class ProposalVotingMachineService(VotingMachineService):
    """A ``VotingMachineService`` bound to a single proposal"""

    def __init__(self, contract: IIntVoteContract, address: Optional[Address], proposal_id: Hash):
        require(proposal_id, "proposalId")
        super().__init__(contract, address)
        self.proposal_id = proposal_id

    async def cancel_proposal(self) -> ArcTransactionResult:
        return await super().cancel_proposal(self.proposal_id)

    async def owner_vote(self, choice: int, voter_address: Address) -> ArcTransactionResult:
        return await super().owner_vote(self.proposal_id, choice, voter_address)

    async def vote(self, choice: int, on_behalf_of: Optional[Address] = None) -> ArcTransactionResult:
        return await super().vote(self.proposal_id, choice, on_behalf_of)

    async def vote_with_specified_amounts(self, choice: int, reputation: int) -> ArcTransactionResult:
        return await super().vote_with_specified_amounts(self.proposal_id, choice, reputation)

    async def cancel_vote(self) -> ArcTransactionResult:
        return await super().cancel_vote(self.proposal_id)

    async def execute(self) -> ArcTransactionResult:
        return await super().execute(self.proposal_id)

    async def get_number_of_choices(self) -> int:
        return await super().get_number_of_choices(self.proposal_id)

    async def is_votable(self) -> bool:
        return await super().is_votable(self.proposal_id)

    async def vote_status(self, choice: int) -> int:
        return await super().vote_status(self.proposal_id, choice)

    async def get_vote_statuses(self) -> List[int]:
        return await super().get_vote_statuses(self.proposal_id)


class VotingMachineServiceFactory:
    """Creates voting machine services given a voting machine address"""

    def __init__(self, contract_loader: Callable[[Address], IIntVoteContract]):
        self.contract_loader = contract_loader

    def _resolve(self, voting_machine_address: Address):
        require(voting_machine_address, "votingMachineAddress")
        address = normalize_address(voting_machine_address)
        return self.contract_loader(address), address

    def create(self, voting_machine_address: Address) -> VotingMachineService:
        """Create a new VotingMachineService for the given address"""
        contract, address = self._resolve(voting_machine_address)
        return VotingMachineService(contract, address)

    def create_for_proposal(self, voting_machine_address: Address,
                            proposal_id: Hash) -> ProposalVotingMachineService:
        """Create a VotingMachineService bound to ``proposal_id``"""
        contract, address = self._resolve(voting_machine_address)
        return ProposalVotingMachineService(contract, address, proposal_id)

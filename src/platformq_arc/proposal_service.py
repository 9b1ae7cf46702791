"""
Proposal services.

``ProposalService`` builds entity fetchers over proposal-creation events that
can keep only proposals still open for voting and attach a proposal-scoped
voting machine service to each entity.

``SchemeProposalService`` reads a scheme's proposals through the
scheme-supplied ``IProposalGenerator``.
"""

import logging
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Union

from .entity_fetcher import EntityFetcherFactory, EntityTransform, create_entity_fetcher_factory
from .event_fetcher import EventFetcher, EventFetcherFactory
from .interfaces import IProposalGenerator
from .models import GetProposalsOptions, VotableProposal
from .types import Address, Hash, InvalidArgumentError
from .utils import maybe_await, merge_arg_filters, require
from .voting_machine import (
    ProposalVotingMachineService, VotingMachineService, VotingMachineServiceFactory
)

logger = logging.getLogger(__name__)


def _attach_voting_machine(entity: Any, voting_machine: ProposalVotingMachineService) -> Any:
    if isinstance(entity, MutableMapping):
        entity["voting_machine"] = voting_machine
    else:
        setattr(entity, "voting_machine", voting_machine)
    return entity


class ProposalService:
    """Entity fetchers for proposals of any scheme or voting machine"""

    def get_proposal_events(self,
                            proposals_event_fetcher: Union[EventFetcherFactory, EntityFetcherFactory],
                            transform_event_callback: EntityTransform,
                            votable_only: bool = False,
                            voting_machine_service: Optional[VotingMachineService] = None,
                            base_arg_filter: Optional[Dict[str, Any]] = None,
                            attach_voting_machine: bool = False,
                            proposal_id_field: str = "_proposalId") -> EntityFetcherFactory:
        """
        Return an EntityFetcherFactory of proposals.

        Args:
            proposals_event_fetcher: fetcher factory for the proposal-creation event
            transform_event_callback: builds the proposal from the event args
            votable_only: leave out proposals the voting machine says are not votable
            voting_machine_service: required with votable_only or attach_voting_machine
            base_arg_filter: merged into every argument filter, e.g. ``{"_avatar": avatar}``
            attach_voting_machine: set ``voting_machine`` on each proposal to a
                service bound to that proposal
            proposal_id_field: name of the proposal id in the event args

        Raises:
            InvalidArgumentError: when a voting machine service is needed but missing
        """
        if (votable_only or attach_voting_machine) and voting_machine_service is None:
            raise InvalidArgumentError("votingMachineService is not defined")

        async def transform(args: Dict[str, Any]) -> Any:
            proposal_id = args.get(proposal_id_field)
            if votable_only and not await voting_machine_service.is_votable(proposal_id):
                return None

            proposal = await maybe_await(transform_event_callback(args))
            if proposal is None:
                return None

            if attach_voting_machine:
                _attach_voting_machine(proposal, ProposalVotingMachineService(
                    voting_machine_service.contract, voting_machine_service.address, proposal_id))
            return proposal

        return create_entity_fetcher_factory(proposals_event_fetcher, transform, base_arg_filter)

    def get_votable_proposals(self,
                              voting_machine_service: VotingMachineService,
                              new_proposal_fetcher: EventFetcherFactory,
                              base_arg_filter: Optional[Dict[str, Any]] = None) -> EntityFetcherFactory:
        """
        EntityFetcherFactory of ``VotableProposal`` built from a voting
        machine's ``NewProposal`` events, each carrying its voting machine.
        """
        return self.get_proposal_events(
            new_proposal_fetcher,
            VotableProposal.from_event_args,
            votable_only=True,
            voting_machine_service=voting_machine_service,
            base_arg_filter=base_arg_filter,
            attach_voting_machine=True,
        )


class SchemeProposalService:
    """
    Reads the proposals of one kind of scheme.

    Not scoped to an avatar; the avatar is given per call.
    """

    def __init__(self, proposal_generator: IProposalGenerator,
                 voting_machine_factory: VotingMachineServiceFactory):
        self.proposal_generator = proposal_generator
        self.voting_machine_factory = voting_machine_factory

    async def get_voting_machine_service(self, avatar_address: Address) -> VotingMachineService:
        """VotingMachineService of the voting machine the scheme uses for the avatar"""
        require(avatar_address, "avatar")
        address = await self.proposal_generator.get_voting_machine_address(avatar_address)
        return self.voting_machine_factory.create(address)

    async def get_proposal(self, avatar_address: Address, proposal_id: Hash,
                           event_args: Optional[Dict[str, Any]] = None) -> Any:
        require(avatar_address, "avatar")
        require(proposal_id, "proposalId")
        event_args = dict(event_args or {})
        params = await self.proposal_generator.get_proposal(avatar_address, proposal_id, event_args)
        return self.proposal_generator.convert_to_proposal(params, avatar_address, proposal_id, event_args)

    def _create_fetcher(self, options: GetProposalsOptions) -> EventFetcher:
        base = {"_avatar": options.avatar_address} if options.avatar_address else {}
        arg_filter = merge_arg_filters(options.event_args_filter, base)
        filter_config = {"from_block": 0}
        filter_config.update(options.event_filter_config)
        return self.proposal_generator.proposals_event_fetcher(arg_filter, filter_config)

    async def _convert_events(self, options: GetProposalsOptions, events: List[Any],
                              fetcher: Optional[EventFetcher] = None) -> List[Any]:
        proposals = []
        for event in events:
            args = event.args
            avatar_address = options.avatar_address or args.get("_avatar")
            proposal = await self.get_proposal(avatar_address, args["_proposalId"], args)
            if options.per_proposal_callback is not None:
                stop = await maybe_await(options.per_proposal_callback(proposal))
                if stop:
                    if fetcher is not None:
                        fetcher.stop_watching()
                    break
            proposals.append(proposal)
        return proposals

    async def get_proposals(self, options: Union[GetProposalsOptions, Dict[str, Any], None] = None) -> List[Any]:
        """
        Return the scheme's proposals, by default from block 0.

        ``per_proposal_callback`` is called with each proposal; a truthy
        result stops the search and leaves that proposal out.
        """
        options = self._coerce(options)
        fetcher = self._create_fetcher(options)
        proposals = await self._convert_events(options, await fetcher.get())
        logger.debug(f"Read {len(proposals)} proposals for avatar {options.avatar_address}")
        return proposals

    async def get_votable_proposals(self, options: Union[GetProposalsOptions, Dict[str, Any], None] = None) -> List[Any]:
        return await self.get_proposals(options)

    def watch_proposals(self, options: Union[GetProposalsOptions, Dict[str, Any], None] = None,
                        error_callback: Optional[Callable[[Exception], Any]] = None) -> EventFetcher:
        """
        Watch for new proposals, calling ``per_proposal_callback`` with each.
        A truthy callback result stops the watch.

        Ledger errors go to ``error_callback``, or are logged when there is
        none; either way the watch continues.

        Returns:
            The underlying fetcher; call ``stop_watching()`` on it when done
        """
        options = self._coerce(options)
        if options.per_proposal_callback is None:
            raise InvalidArgumentError("perProposalCallback is not defined")
        fetcher = self._create_fetcher(options)

        async def on_events(error: Optional[Exception], events: List[Any]) -> None:
            if error is not None:
                if error_callback is None:
                    logger.error(f"Error watching proposals of {options.avatar_address}: {error}")
                    return
                await maybe_await(error_callback(error))
                return
            await self._convert_events(options, events, fetcher)

        fetcher.watch(on_events)
        return fetcher

    @staticmethod
    def _coerce(options: Union[GetProposalsOptions, Dict[str, Any], None]) -> GetProposalsOptions:
        if options is None:
            return GetProposalsOptions()
        if isinstance(options, GetProposalsOptions):
            return options
        return GetProposalsOptions(**options)

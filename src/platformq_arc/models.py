"""
Option and entity models for event fetching and proposals.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import Address, Hash

BlockIdentifier = Union[int, str]

_BLOCK_TAGS = {"latest", "earliest", "pending", "safe", "finalized"}


class EventFetcherOptions(BaseModel):
    """
    Block-range and behaviour options recognized by event fetchers.

    ==================  ===========  ============================================
    option              default      effect
    ==================  ===========  ============================================
    from_block          settings     first block searched / watched
    to_block            "latest"     last block searched by ``get``
    address             None         restrict logs to an emitting address
    topics              None         raw topic filter passed to the ledger
    suppress_dups       settings     drop events whose tx hash was already seen
    poll_interval       settings     seconds between polls while watching
    ==================  ===========  ============================================
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    from_block: Optional[BlockIdentifier] = None
    to_block: BlockIdentifier = "latest"
    address: Optional[Address] = None
    topics: Optional[List[Any]] = None
    suppress_dups: Optional[bool] = None
    poll_interval: Optional[float] = Field(None, gt=0)

    @field_validator("from_block", "to_block")
    @classmethod
    def validate_block(cls, v):
        if v is None or isinstance(v, int):
            if isinstance(v, int) and v < 0:
                raise ValueError("block number must be non-negative")
            return v
        if v not in _BLOCK_TAGS and not str(v).startswith("0x"):
            raise ValueError(f"invalid block identifier: {v}")
        return v

    @classmethod
    def coerce(cls, value: Union["EventFetcherOptions", Dict[str, Any], None]) -> "EventFetcherOptions":
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls(**value)


class VotableProposal(BaseModel):
    """A proposal, created by a voting machine, that is still open for voting"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    proposal_id: Hash
    avatar_address: Optional[Address] = None
    num_of_choices: int = 0
    params_hash: Optional[Hash] = None
    proposer: Optional[Address] = None
    voting_machine: Optional[Any] = None

    @classmethod
    def from_event_args(cls, args: Dict[str, Any]) -> "VotableProposal":
        return cls(
            proposal_id=args["_proposalId"],
            avatar_address=args.get("_avatar"),
            num_of_choices=int(args.get("_numOfChoices") or 0),
            params_hash=args.get("_paramsHash"),
            proposer=args.get("_proposer"),
        )


PerProposalCallback = Callable[[Any], Union[None, bool, Awaitable[Optional[bool]]]]


class GetProposalsOptions(BaseModel):
    """Options for reading a scheme's proposals"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    avatar_address: Optional[Address] = None
    per_proposal_callback: Optional[PerProposalCallback] = None
    event_filter_config: Dict[str, Any] = Field(default_factory=dict)
    event_args_filter: Dict[str, Any] = Field(default_factory=dict)

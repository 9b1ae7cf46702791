"""
Contract ABIs.

The ``IntVoteInterface`` ABI is bundled since every voting machine
implements it; other ABIs are loaded from build artifacts.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from .types import ContractNotFoundError

logger = logging.getLogger(__name__)


def _fn(name: str, inputs: List[tuple], outputs: List[str], mutability: str) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": mutability,
    }


def _event(name: str, inputs: List[tuple]) -> Dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": indexed} for n, t, indexed in inputs],
    }


INT_VOTE_INTERFACE_ABI: List[Dict[str, Any]] = [
    _fn("propose", [("_numOfChoices", "uint256"), ("_proposalParameters", "bytes32"),
                    ("_avatar", "address"), ("_executable", "address")], ["bytes32"], "nonpayable"),
    _fn("cancelProposal", [("_proposalId", "bytes32")], ["bool"], "nonpayable"),
    _fn("ownerVote", [("_proposalId", "bytes32"), ("_vote", "uint256"), ("_voter", "address")],
        ["bool"], "nonpayable"),
    _fn("vote", [("_proposalId", "bytes32"), ("_vote", "uint256")], ["bool"], "nonpayable"),
    _fn("voteWithSpecifiedAmounts", [("_proposalId", "bytes32"), ("_vote", "uint256"),
                                     ("_rep", "uint256"), ("_token", "uint256")], ["bool"], "nonpayable"),
    _fn("cancelVote", [("_proposalId", "bytes32")], [], "nonpayable"),
    _fn("execute", [("_proposalId", "bytes32")], ["bool"], "nonpayable"),
    _fn("getNumberOfChoices", [("_proposalId", "bytes32")], ["uint256"], "view"),
    _fn("isVotable", [("_proposalId", "bytes32")], ["bool"], "view"),
    _fn("voteStatus", [("_proposalId", "bytes32"), ("_choice", "uint256")], ["uint256"], "view"),
    _fn("isAbstainAllow", [], ["bool"], "pure"),
    _event("NewProposal", [("_proposalId", "bytes32", True), ("_avatar", "address", True),
                           ("_numOfChoices", "uint256", False), ("_proposer", "address", False),
                           ("_paramsHash", "bytes32", False)]),
    _event("ExecuteProposal", [("_proposalId", "bytes32", True), ("_avatar", "address", True),
                               ("_decision", "uint256", False), ("_totalReputation", "uint256", False)]),
    _event("VoteProposal", [("_proposalId", "bytes32", True), ("_avatar", "address", True),
                            ("_voter", "address", True), ("_vote", "uint256", False),
                            ("_reputation", "uint256", False)]),
    _event("CancelProposal", [("_proposalId", "bytes32", True), ("_avatar", "address", True)]),
    _event("CancelVoting", [("_proposalId", "bytes32", True), ("_avatar", "address", True),
                            ("_voter", "address", True)]),
]


def load_abi(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Load an ABI from a JSON file, either a bare ABI list or a build
    artifact with an ``abi`` key.
    """
    path = Path(path)
    if not path.exists():
        raise ContractNotFoundError(f"ABI artifact not found: {path}")

    with path.open() as f:
        data = json.load(f)

    abi = data.get("abi") if isinstance(data, dict) else data
    if not abi:
        raise ContractNotFoundError(f"No ABI found in {path}")

    logger.debug(f"Loaded ABI with {len(abi)} entries from {path}")
    return abi


def event_names(abi: List[Dict[str, Any]]) -> List[str]:
    return [item["name"] for item in abi if item.get("type") == "event"]

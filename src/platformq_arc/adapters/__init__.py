"""
Ledger access implementations.
"""

from .web3_adapter import (
    Web3ContractEvent,
    Web3ContractProvider,
    Web3EventFilter,
    Web3IntVoteContract,
)

__all__ = [
    "Web3ContractEvent",
    "Web3ContractProvider",
    "Web3EventFilter",
    "Web3IntVoteContract",
]

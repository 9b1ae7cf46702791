"""
Core types, envelopes and exceptions shared by the Arc access services.
"""

import uuid
from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Any, List, Mapping

from hexbytes import HexBytes

Address = str
Hash = str


def _to_hex(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return HexBytes(value).to_0x_hex()
    return str(value)


@dataclass(frozen=True)
class DecodedLogEntry:
    """A single decoded contract event as delivered by the ledger"""
    event: str
    args: Dict[str, Any]
    transaction_hash: Hash
    block_number: Optional[int] = None
    log_index: Optional[int] = None
    address: Optional[Address] = None
    removed: bool = False

    @classmethod
    def from_web3(cls, log: Mapping[str, Any]) -> "DecodedLogEntry":
        """Build from a web3 event log (``AttributeDict``)"""
        return cls(
            event=log.get("event", "Unknown"),
            args={k: _to_hex(v) if isinstance(v, (bytes, bytearray)) else v
                  for k, v in dict(log.get("args", {})).items()},
            transaction_hash=_to_hex(log.get("transactionHash")),
            block_number=log.get("blockNumber"),
            log_index=log.get("logIndex"),
            address=log.get("address"),
            removed=bool(log.get("removed", False)),
        )


@dataclass(frozen=True)
class InvocationKey:
    """Opaque token identifying one logical, possibly multi-transaction, call"""
    topic: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __str__(self) -> str:
        return f"{self.topic}#{self.id.hex[:8]}"


@dataclass(frozen=True)
class TransactionEventEnvelope:
    """
    Payload published to transaction-receipt subscribers.

    ``tx`` is None for the kick-off event announcing that ``tx_count``
    transactions will follow under the same ``invocation_key``.
    """
    invocation_key: InvocationKey
    options: Any
    tx: Optional[Mapping[str, Any]]
    tx_count: int

    @property
    def is_kickoff(self) -> bool:
        return self.tx is None

    def with_tx(self, tx: Mapping[str, Any]) -> "TransactionEventEnvelope":
        return replace(self, tx=tx)


@dataclass
class ArcTransactionResult:
    """Result of a transaction issued through one of the services"""
    tx: Mapping[str, Any]

    @property
    def tx_hash(self) -> Optional[Hash]:
        return _to_hex(self.tx.get("transactionHash"))

    @property
    def logs(self) -> List[Mapping[str, Any]]:
        return list(self.tx.get("logs") or [])

    def get_value_from_tx(self, value_name: str, event_name: Optional[str] = None,
                          index: int = 0) -> Any:
        """
        Return the argument ``value_name`` from the ``index``-th decoded log
        (optionally restricted to ``event_name``), or None when absent.
        """
        matches = [
            log for log in self.logs
            if "args" in log and (event_name is None or log.get("event") == event_name)
        ]
        if len(matches) <= index:
            return None
        return matches[index]["args"].get(value_name)


@dataclass
class ArcTransactionProposalResult(ArcTransactionResult):
    """Transaction result for calls that create a proposal"""

    @property
    def proposal_id(self) -> Optional[Hash]:
        value = self.get_value_from_tx("_proposalId", "NewProposal")
        if value is None:
            value = self.get_value_from_tx("_proposalId")
        return _to_hex(value)


class ArcError(Exception):
    """Base exception for Arc access operations"""
    def __init__(self, message: str, error_code: Optional[str] = None):
        self.error_code = error_code
        super().__init__(message)


class InvalidArgumentError(ArcError, ValueError):
    """A required argument is missing or malformed"""
    pass


class UnsupportedOperationError(ArcError):
    """The voting machine does not support the requested operation"""
    pass


class ContractNotFoundError(ArcError):
    """A contract binding or ABI could not be resolved"""
    pass

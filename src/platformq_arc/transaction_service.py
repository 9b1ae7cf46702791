"""
Transaction tracking.

Functions that issue one or more transactions publish a "kick-off" event
announcing how many transactions to expect, followed by one event per
completed transaction. Subscribers group the events by invocation key.

Topics conventionally look like ``"txReceipts.<Class>.<function>"``.
"""

import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Union

from .config import ArcSettings, get_settings
from .pubsub import EventSubscription, PubSubEventService, Subscriber
from .types import (
    ArcTransactionResult, InvalidArgumentError, InvocationKey, TransactionEventEnvelope
)

logger = logging.getLogger(__name__)


class TransactionService:
    """Publishes and relays transaction progress on a ``PubSubEventService``"""

    def __init__(self, bus: Optional[PubSubEventService] = None,
                 settings: Optional[ArcSettings] = None):
        self.bus = bus or PubSubEventService()
        self.settings = settings or get_settings()

    def topic(self, *parts: str) -> str:
        """Build a topic under the configured receipts root"""
        return ".".join((self.settings.tx_receipts_topic,) + parts)

    @staticmethod
    def generate_invocation_key(topic: str) -> InvocationKey:
        return InvocationKey(topic)

    def publish_kickoff_event(self, topic: str, options: Any, tx_count: int,
                              suppress_kickoff: bool = False) -> TransactionEventEnvelope:
        """
        Publish the kick-off event and return the envelope to use for the
        ensuing per-transaction events of this invocation.

        The envelope is returned even when the kick-off is suppressed.
        """
        if isinstance(tx_count, bool) or not isinstance(tx_count, int) or tx_count < 0:
            raise InvalidArgumentError("txCount must be a non-negative integer")

        envelope = TransactionEventEnvelope(
            invocation_key=self.generate_invocation_key(topic),
            options=options,
            tx=None,
            tx_count=tx_count,
        )
        if not suppress_kickoff:
            self.publish_tx_event(topic, envelope)
        return envelope

    def publish_tx_event(self, topic: str, envelope: TransactionEventEnvelope,
                         tx: Optional[Mapping[str, Any]] = None) -> bool:
        """
        Send ``envelope`` to subscribers of ``topic``, carrying ``tx`` when given.

        Returns:
            True if there were any subscribers
        """
        if tx is not None:
            envelope = envelope.with_tx(tx)
        return self.bus.publish(topic, envelope)

    def subscribe(self, topics: Union[str, Iterable[str]], callback: Subscriber) -> EventSubscription:
        return self.bus.subscribe(topics, callback)

    def resend_tx_events(self, topics: Union[str, Iterable[str]], super_topic: str,
                         super_envelope: TransactionEventEnvelope) -> EventSubscription:
        """
        Republish every transaction event published on ``topics`` under
        ``super_topic``, with the invocation key, options and count of
        ``super_envelope``. Kick-off events are not republished.

        Returns:
            The relaying subscription. Be sure to unsubscribe it.
        """
        def relay(topic: str, envelope: TransactionEventEnvelope) -> None:
            if envelope.tx is None:
                return
            if envelope.invocation_key == super_envelope.invocation_key:
                return
            self.publish_tx_event(super_topic, super_envelope, envelope.tx)

        return self.bus.subscribe(topics, relay)

    async def wrap_transaction_invocation(self, topic: str, options: Any,
                                          invoke: Callable[[], Awaitable[Mapping[str, Any]]]) -> ArcTransactionResult:
        """Publish the kick-off, run a single transaction and publish its receipt"""
        envelope = self.publish_kickoff_event(topic, options, 1)
        logger.debug(f"{topic}: {options}")
        tx = await invoke()
        self.publish_tx_event(topic, envelope, tx)
        return ArcTransactionResult(tx)

"""
Event fetchers over raw contract events.

An ``EventFetcherFactory`` wraps one contract event type. Calling the factory
with an argument filter and block-range options yields an ``EventFetcher``
whose ``get``/``watch`` results are always lists, with duplicate deliveries
of the same transaction suppressed (see web3.js issue #398 for why nodes
re-deliver logs).

Example::

    events = provider.event_sources(voting_machine_address, INT_VOTE_INTERFACE_ABI)
    new_proposal = create_event_fetcher_factory(events("NewProposal"))
    fetcher = new_proposal({"_avatar": avatar}, {"from_block": 0})
    logs = await fetcher.get()
"""

import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .config import ArcSettings, get_settings
from .interfaces import IContractEvent, IRawEventFilter, RawLog
from .models import EventFetcherOptions
from .types import DecodedLogEntry, Hash
from .utils import maybe_await, merge_arg_filters

logger = logging.getLogger(__name__)

EventCallback = Callable[[Optional[Exception], List[DecodedLogEntry]], Any]
EventPreprocessor = Callable[
    [Optional[Exception], List[DecodedLogEntry]],
    Union[Tuple[Optional[Exception], List[DecodedLogEntry]],
          Awaitable[Tuple[Optional[Exception], List[DecodedLogEntry]]]]
]


def _tx_identity(event: Any) -> Optional[Hash]:
    if isinstance(event, DecodedLogEntry):
        return event.transaction_hash
    if isinstance(event, Mapping):
        return event.get("transactionHash") or event.get("transaction_hash")
    return getattr(event, "transaction_hash", None)


class EventFetcher:
    """
    Fetches or watches one filtered contract event.

    Delivery pipeline: raw delivery -> list normalization -> duplicate
    suppression -> preprocess hook -> callback / return value.

    Duplicates are recognized by transaction hash alone, so after the first
    event of a transaction any other event of the same type from that
    transaction (a different ``log_index``) is dropped as well. Pass
    ``suppress_dups=False`` to receive every log.
    """

    def __init__(self,
                 raw_filter: IRawEventFilter,
                 suppress_dups: bool = True,
                 preprocess: Optional[EventPreprocessor] = None,
                 max_tracked_transactions: Optional[int] = None):
        self._raw_filter = raw_filter
        self._preprocess = preprocess
        self._max_tracked = max_tracked_transactions
        # per-instance only, never shared between fetchers
        self._received: Optional["OrderedDict[Hash, None]"] = OrderedDict() if suppress_dups else None
        self._watching = False
        self._stopped = False

    @property
    def is_watching(self) -> bool:
        return self._watching

    def _is_new(self, event: Any) -> bool:
        tx_hash = _tx_identity(event)
        if tx_hash is None:
            return True
        if tx_hash in self._received:
            return False
        self._received[tx_hash] = None
        if self._max_tracked is not None and len(self._received) > self._max_tracked:
            self._received.popitem(last=False)
        return True

    async def _handle_event(self, error: Optional[Exception],
                            log: Optional[RawLog]) -> Tuple[Optional[Exception], List[DecodedLogEntry]]:
        if error is not None or log is None:
            events: List[DecodedLogEntry] = []
        elif isinstance(log, (list, tuple)):
            events = list(log)
        else:
            events = [log]

        if self._received is not None and events:
            events = [event for event in events if self._is_new(event)]

        if self._preprocess is not None:
            error, events = await maybe_await(self._preprocess(error, events))
            events = list(events or [])

        return error, events

    async def get(self, callback: Optional[EventCallback] = None) -> List[DecodedLogEntry]:
        """
        Fetch matching events once.

        Returns the list of events. When ``callback`` is given it is also
        called with ``(error, events)``. Ledger errors are raised after the
        callback has seen them; no partial results are returned.
        """
        try:
            raw = await self._raw_filter.get()
        except Exception as e:
            error, events = await self._handle_event(e, None)
        else:
            error, events = await self._handle_event(None, raw)

        if callback is not None:
            await maybe_await(callback(error, events))
        if error is not None:
            raise error
        return events

    def watch(self, callback: EventCallback) -> None:
        """Deliver new matching events to ``callback`` until ``stop_watching``"""
        self._stopped = False
        self._watching = True

        async def on_raw_event(error: Optional[Exception], log: Optional[RawLog]) -> None:
            error, events = await self._handle_event(error, log)
            if self._stopped:
                return
            await maybe_await(callback(error, events))

        self._raw_filter.watch(on_raw_event)
        logger.debug(f"Started watching {self._raw_filter!r}")

    def stop_watching(self) -> None:
        """Stop watching. Safe to call repeatedly or before ``watch``."""
        self._stopped = True
        if self._watching:
            self._watching = False
            self._raw_filter.stop_watching()
            logger.debug(f"Stopped watching {self._raw_filter!r}")


class EventFetcherFactory:
    """Creates ``EventFetcher`` instances for one contract event"""

    def __init__(self,
                 event_source: IContractEvent,
                 preprocess: Optional[EventPreprocessor] = None,
                 base_arg_filter: Optional[Dict[str, Any]] = None,
                 max_tracked_transactions: Optional[int] = None,
                 settings: Optional[ArcSettings] = None):
        self.event_source = event_source
        self.preprocess = preprocess
        self.base_arg_filter = dict(base_arg_filter or {})
        self.max_tracked_transactions = max_tracked_transactions
        self._settings = settings

    @property
    def settings(self) -> ArcSettings:
        return self._settings or get_settings()

    def resolve_options(self, filter_options: Union[EventFetcherOptions, Dict[str, Any], None]) -> Dict[str, Any]:
        """Apply defaults to the caller's options, returning what the source receives"""
        options = EventFetcherOptions.coerce(filter_options)
        settings = self.settings
        resolved = {
            "from_block": settings.default_from_block if options.from_block is None else options.from_block,
            "to_block": options.to_block,
            "address": options.address,
            "topics": options.topics,
            "poll_interval": options.poll_interval or settings.event_poll_interval,
            "suppress_dups": (settings.suppress_duplicate_events
                              if options.suppress_dups is None else options.suppress_dups),
        }
        return {k: v for k, v in resolved.items() if v is not None}

    def __call__(self,
                 arg_filter: Optional[Dict[str, Any]] = None,
                 filter_options: Union[EventFetcherOptions, Dict[str, Any], None] = None,
                 callback: Optional[EventCallback] = None) -> EventFetcher:
        """
        Create an EventFetcher.

        Args:
            arg_filter: event argument values to match, e.g.
                ``{"_avatar": address, "_proposalId": [id1, id2]}``
            filter_options: ``EventFetcherOptions`` or an equivalent dict
            callback: when given, the fetcher starts watching immediately

        Returns:
            A new EventFetcher with its own duplicate-suppression state
        """
        options = self.resolve_options(filter_options)
        suppress_dups = options.pop("suppress_dups")
        raw_filter = self.event_source(merge_arg_filters(arg_filter, self.base_arg_filter), options)

        fetcher = EventFetcher(
            raw_filter,
            suppress_dups=suppress_dups,
            preprocess=self.preprocess,
            max_tracked_transactions=(self.max_tracked_transactions
                                      or self.settings.max_tracked_transactions),
        )
        if callback is not None:
            fetcher.watch(callback)
        return fetcher


def create_event_fetcher_factory(event_source: IContractEvent,
                                 preprocess: Optional[EventPreprocessor] = None,
                                 base_arg_filter: Optional[Dict[str, Any]] = None,
                                 max_tracked_transactions: Optional[int] = None,
                                 settings: Optional[ArcSettings] = None) -> EventFetcherFactory:
    """Return an ``EventFetcherFactory`` for the given contract event"""
    return EventFetcherFactory(
        event_source,
        preprocess=preprocess,
        base_arg_filter=base_arg_filter,
        max_tracked_transactions=max_tracked_transactions,
        settings=settings,
    )

"""
Entity fetchers: event fetchers whose results are passed through a transform.

A transform receives the argument payload of each event and returns the
entity to deliver, or None to leave the event out. Every transform of a batch
is awaited before the batch is delivered, and entities keep the order of the
events they came from.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from .event_fetcher import EventCallback, EventFetcherFactory
from .models import EventFetcherOptions
from .types import DecodedLogEntry
from .utils import maybe_await, merge_arg_filters

logger = logging.getLogger(__name__)

EntityTransform = Callable[[Any], Union[Any, Awaitable[Any]]]
EntityCallback = Callable[[Optional[Exception], List[Any]], Any]


def _event_args(event: Any) -> Dict[str, Any]:
    if isinstance(event, DecodedLogEntry):
        return event.args
    if isinstance(event, Mapping):
        return event["args"]
    return event.args


def _identity(item: Any) -> Any:
    return item


class EntityFetcher:
    """Fetches or watches entities derived from an underlying fetcher"""

    def __init__(self, inner: Any, transform: EntityTransform,
                 extract: Callable[[Any], Any] = _event_args):
        self._inner = inner
        self._transform = transform
        self._extract = extract
        self._stopped = False

    async def _apply(self, item: Any) -> Any:
        return await maybe_await(self._transform(self._extract(item)))

    async def _transform_batch(self, items: List[Any]) -> List[Any]:
        results = await asyncio.gather(*(self._apply(item) for item in items))
        return [entity for entity in results if entity is not None]

    async def get(self, callback: Optional[EntityCallback] = None) -> List[Any]:
        """
        Fetch entities once.

        Any failure, in the ledger query or in a single transform, fails the
        whole batch.
        """
        try:
            entities = await self._transform_batch(await self._inner.get())
        except Exception as e:
            if callback is not None:
                await maybe_await(callback(e, []))
            raise
        if callback is not None:
            await maybe_await(callback(None, entities))
        return entities

    def watch(self, callback: EntityCallback) -> None:
        """Deliver entity batches to ``callback`` until ``stop_watching``"""
        self._stopped = False

        async def on_batch(error: Optional[Exception], items: List[Any]) -> None:
            entities: List[Any] = []
            if error is None:
                try:
                    entities = await self._transform_batch(items)
                except Exception as e:
                    logger.warning(f"Entity transform failed while watching: {e}")
                    error = e
            # transforms may finish after stop_watching
            if self._stopped:
                return
            await maybe_await(callback(error, entities))

        self._inner.watch(on_batch)

    def stop_watching(self) -> None:
        """Stop watching. Safe to call repeatedly or before ``watch``."""
        self._stopped = True
        self._inner.stop_watching()


class EntityFetcherFactory:
    """Creates ``EntityFetcher`` instances; called like an ``EventFetcherFactory``"""

    def __init__(self,
                 fetcher_factory: Union[EventFetcherFactory, "EntityFetcherFactory"],
                 transform: EntityTransform,
                 base_arg_filter: Optional[Dict[str, Any]] = None,
                 extract: Callable[[Any], Any] = _event_args):
        self.fetcher_factory = fetcher_factory
        self.transform = transform
        self.base_arg_filter = dict(base_arg_filter or {})
        self._extract = extract

    def __call__(self,
                 arg_filter: Optional[Dict[str, Any]] = None,
                 filter_options: Union[EventFetcherOptions, Dict[str, Any], None] = None,
                 callback: Optional[EventCallback] = None) -> EntityFetcher:
        inner = self.fetcher_factory(merge_arg_filters(arg_filter, self.base_arg_filter), filter_options)
        fetcher = EntityFetcher(inner, self.transform, self._extract)
        if callback is not None:
            fetcher.watch(callback)
        return fetcher


def create_entity_fetcher_factory(event_fetcher_factory: EventFetcherFactory,
                                  transform: EntityTransform,
                                  base_arg_filter: Optional[Dict[str, Any]] = None) -> EntityFetcherFactory:
    """
    Return a factory of fetchers that deliver ``transform(event.args)``.

    ``base_arg_filter`` is merged into every argument filter; its keys win
    over the caller's.
    """
    return EntityFetcherFactory(event_fetcher_factory, transform, base_arg_filter)


def pipe_entity_fetcher_factory(entity_fetcher_factory: EntityFetcherFactory,
                                transform: EntityTransform) -> EntityFetcherFactory:
    """Return a factory whose entities are ``transform(entity)`` of the given factory's"""
    return EntityFetcherFactory(entity_fetcher_factory, transform, extract=_identity)

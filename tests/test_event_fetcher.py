"""
Tests for event fetchers
"""

import pytest
from unittest.mock import AsyncMock, Mock

from platformq_arc import DecodedLogEntry, create_event_fetcher_factory

from conftest import AVATAR, OTHER_AVATAR, FakeEventSource, make_log


class TestEventFetcherGet:
    """One-shot fetches"""

    @pytest.mark.asyncio
    async def test_get_returns_list(self, settings):
        source = FakeEventSource(logs=[make_log("0x01"), make_log("0x02")])
        fetcher = create_event_fetcher_factory(source, settings=settings)()

        events = await fetcher.get()

        assert [e.transaction_hash for e in events] == ["0x01", "0x02"]

    @pytest.mark.asyncio
    async def test_single_log_normalized_to_list(self, settings):
        source = FakeEventSource(logs=make_log("0x01"))
        fetcher = create_event_fetcher_factory(source, settings=settings)()

        events = await fetcher.get()

        assert isinstance(events, list)
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_empty_result_is_empty_list(self, settings):
        source = FakeEventSource(logs=[])
        fetcher = create_event_fetcher_factory(source, settings=settings)()

        assert await fetcher.get() == []

    @pytest.mark.asyncio
    async def test_duplicates_suppressed_by_default(self, settings):
        source = FakeEventSource(logs=[make_log("0x01"), make_log("0x01"), make_log("0x02")])
        fetcher = create_event_fetcher_factory(source, settings=settings)()

        events = await fetcher.get()

        assert [e.transaction_hash for e in events] == ["0x01", "0x02"]

    @pytest.mark.asyncio
    async def test_dedup_memory_is_per_fetcher(self, settings):
        source = FakeEventSource(logs=[make_log("0x01")])
        factory = create_event_fetcher_factory(source, settings=settings)
        first = factory()
        second = factory()

        assert len(await first.get()) == 1
        assert await first.get() == []
        assert len(await second.get()) == 1

    @pytest.mark.asyncio
    async def test_suppress_dups_disabled(self, settings):
        source = FakeEventSource(logs=[make_log("0x01"), make_log("0x01")])
        fetcher = create_event_fetcher_factory(source, settings=settings)(None, {"suppress_dups": False})

        assert len(await fetcher.get()) == 2
        assert "suppress_dups" not in source.last.options

    @pytest.mark.asyncio
    async def test_same_transaction_logs_collapse_unless_disabled(self, settings):
        logs = [DecodedLogEntry(event="NewProposal", args={"_proposalId": pid}, transaction_hash="0x01", log_index=index)
                for index, pid in enumerate(["p1", "p2"])]
        factory = create_event_fetcher_factory(FakeEventSource(logs=logs), settings=settings)

        deduped = await factory().get()
        every_log = await factory(None, {"suppress_dups": False}).get()

        assert [e.args["_proposalId"] for e in deduped] == ["p1"]
        assert [e.log_index for e in every_log] == [0, 1]

    @pytest.mark.asyncio
    async def test_bounded_dedup_evicts_oldest(self, settings):
        source = FakeEventSource()
        fetcher = create_event_fetcher_factory(source, max_tracked_transactions=1, settings=settings)()
        raw = source.last

        raw.logs = [make_log("0x01"), make_log("0x02")]
        assert len(await fetcher.get()) == 2

        # 0x01 was evicted when 0x02 arrived
        raw.logs = [make_log("0x01")]
        assert len(await fetcher.get()) == 1

    @pytest.mark.asyncio
    async def test_ledger_error_raises_and_reaches_callback(self, settings):
        error = RuntimeError("node unavailable")
        source = FakeEventSource(error=error)
        fetcher = create_event_fetcher_factory(source, settings=settings)()
        callback = Mock()

        with pytest.raises(RuntimeError, match="node unavailable"):
            await fetcher.get(callback)

        callback.assert_called_once_with(error, [])

    @pytest.mark.asyncio
    async def test_get_callback_receives_events(self, settings):
        source = FakeEventSource(logs=[make_log("0x01")])
        fetcher = create_event_fetcher_factory(source, settings=settings)()
        callback = AsyncMock()

        events = await fetcher.get(callback)

        callback.assert_awaited_once_with(None, events)


class TestPreprocess:
    """Preprocess hook"""

    @pytest.mark.asyncio
    async def test_preprocess_runs_after_dedup(self, settings):
        seen = []

        def preprocess(error, events):
            seen.append([e.transaction_hash for e in events])
            return error, events[:1]

        source = FakeEventSource(logs=[make_log("0x01"), make_log("0x01"), make_log("0x02")])
        fetcher = create_event_fetcher_factory(source, preprocess=preprocess, settings=settings)()

        events = await fetcher.get()

        assert seen == [["0x01", "0x02"]]
        assert [e.transaction_hash for e in events] == ["0x01"]

    @pytest.mark.asyncio
    async def test_async_preprocess(self, settings):
        async def preprocess(error, events):
            return error, list(reversed(events))

        source = FakeEventSource(logs=[make_log("0x01"), make_log("0x02")])
        fetcher = create_event_fetcher_factory(source, preprocess=preprocess, settings=settings)()

        events = await fetcher.get()

        assert [e.transaction_hash for e in events] == ["0x02", "0x01"]


class TestEventFetcherWatch:
    """Watching"""

    @pytest.mark.asyncio
    async def test_watch_delivers_lists(self, settings, event_source):
        fetcher = create_event_fetcher_factory(event_source, settings=settings)()
        callback = Mock()
        fetcher.watch(callback)

        await event_source.last.emit(None, make_log("0x01"))

        callback.assert_called_once()
        error, events = callback.call_args[0]
        assert error is None
        assert [e.transaction_hash for e in events] == ["0x01"]
        assert fetcher.is_watching

    @pytest.mark.asyncio
    async def test_watch_suppresses_redelivery(self, settings, event_source):
        fetcher = create_event_fetcher_factory(event_source, settings=settings)()
        callback = Mock()
        fetcher.watch(callback)

        await event_source.last.emit(None, make_log("0x01"))
        await event_source.last.emit(None, make_log("0x01"))

        assert callback.call_args_list[1][0] == (None, [])

    @pytest.mark.asyncio
    async def test_watch_error_delivered_and_watch_continues(self, settings, event_source):
        fetcher = create_event_fetcher_factory(event_source, settings=settings)()
        callback = Mock()
        fetcher.watch(callback)
        error = RuntimeError("filter not found")

        await event_source.last.emit(error, None)
        await event_source.last.emit(None, [make_log("0x01")])

        assert callback.call_args_list[0][0] == (error, [])
        assert len(callback.call_args_list[1][0][1]) == 1

    @pytest.mark.asyncio
    async def test_no_delivery_after_stop(self, settings, event_source):
        fetcher = create_event_fetcher_factory(event_source, settings=settings)()
        callback = Mock()
        fetcher.watch(callback)
        raw = event_source.last

        fetcher.stop_watching()
        await raw.emit(None, make_log("0x01"))

        callback.assert_not_called()
        assert not fetcher.is_watching

    def test_stop_watching_is_idempotent(self, settings, event_source):
        fetcher = create_event_fetcher_factory(event_source, settings=settings)()

        fetcher.stop_watching()
        fetcher.watch(Mock())
        fetcher.stop_watching()
        fetcher.stop_watching()

        assert event_source.last.stop_calls == 1

    def test_factory_callback_starts_watching(self, settings, event_source):
        fetcher = create_event_fetcher_factory(event_source, settings=settings)({}, {}, Mock())

        assert fetcher.is_watching
        assert event_source.last.callback is not None


class TestEventFetcherFactory:
    """Filters and options passed to the event source"""

    def test_defaults_from_settings(self, settings, event_source):
        create_event_fetcher_factory(event_source, settings=settings)()

        options = event_source.last.options
        assert options["from_block"] == "latest"
        assert options["to_block"] == "latest"
        assert options["poll_interval"] == 2.0
        assert "address" not in options

    def test_explicit_options_passed(self, settings, event_source):
        create_event_fetcher_factory(event_source, settings=settings)(None, {"from_block": 0, "to_block": 100})

        assert event_source.last.options["from_block"] == 0
        assert event_source.last.options["to_block"] == 100

    def test_unknown_option_rejected(self, settings, event_source):
        factory = create_event_fetcher_factory(event_source, settings=settings)

        with pytest.raises(ValueError):
            factory(None, {"fromBlock": 0})

    def test_invalid_block_rejected(self, settings, event_source):
        factory = create_event_fetcher_factory(event_source, settings=settings)

        with pytest.raises(ValueError):
            factory(None, {"from_block": "yesterday"})

    def test_base_filter_wins_over_caller(self, settings, event_source):
        factory = create_event_fetcher_factory(event_source, base_arg_filter={"_avatar": AVATAR},
                                               settings=settings)

        factory({"_avatar": OTHER_AVATAR, "_proposalId": ["0x01", "0x02"]})

        assert event_source.last.arg_filter == {"_avatar": AVATAR, "_proposalId": ["0x01", "0x02"]}

    def test_max_tracked_from_settings(self, event_source):
        from platformq_arc import ArcSettings

        factory = create_event_fetcher_factory(event_source, settings=ArcSettings(max_tracked_transactions=5))
        fetcher = factory()

        assert fetcher._max_tracked == 5

from core.errors import ProviderError
from delivery.sink import DeliverySink
from services.ledger import MemoryLedger
from workflows.dispatcher import Dispatcher
from fakes import FakeProvider, FakeSource, RecordingChannel, StaticDestinations, article, destination, make_summarizer


def make_dispatcher(items, destinations, provider=None, ledger=None, channel=None):
    provider = provider or FakeProvider()
    channel = channel or RecordingChannel()
    source = FakeSource(items)
    ledger = ledger if ledger is not None else MemoryLedger()
    dispatcher = Dispatcher(
        source=source,
        ledger=ledger,
        summarizer=make_summarizer(provider),
        destinations=StaticDestinations(destinations),
        sink=DeliverySink([channel]),
    )
    return dispatcher, source, ledger, provider, channel


async def test_second_cycle_does_not_redeliver():
    item = article("futebol/vasco-vence", title="Vasco vence")
    dispatcher, _, ledger, _, channel = make_dispatcher([item], [destination("d1")])

    first = await dispatcher.run_cycle()
    assert await ledger.has(item.id)
    assert channel.recipients == ["d1"]

    second = await dispatcher.run_cycle()

    assert channel.recipients == ["d1"]
    assert first.delivered == 1
    assert second.delivered == 0
    assert second.skipped_seen == 1


async def test_no_destinations_short_circuits_before_fetching():
    dispatcher, source, ledger, provider, _ = make_dispatcher([article("futebol/a")], [])

    report = await dispatcher.run_cycle()

    assert report.short_circuited
    assert source.fetch_calls == 0
    assert provider.calls == []
    assert await ledger.count() == 0


async def test_gate_skips_summary_but_records_item():
    item = article("futebol/vasco-vence")
    dispatcher, _, ledger, provider, channel = make_dispatcher(
        [item], [destination("d1", allow={"base"}), destination("d2", allow={"feminino"})]
    )

    report = await dispatcher.run_cycle()

    assert provider.calls == []
    assert channel.sent == []
    assert await ledger.has(item.id)
    assert report.gated == 1


async def test_unfiltered_destination_still_receives_when_filtered_ones_reject():
    dispatcher, _, _, provider, channel = make_dispatcher(
        [article("futebol/a")], [destination("base-only", allow={"base"}), destination("everything")]
    )

    await dispatcher.run_cycle()

    assert len(provider.calls) == 1
    assert channel.recipients == ["everything"]


async def test_message_carries_summary_and_item_fields():
    item = article("futebol/a", title="Vasco vence", image_url="https://img.test/a.jpg")
    dispatcher, _, _, _, channel = make_dispatcher([item], [destination("d1")], provider=FakeProvider("Resumo."))

    await dispatcher.run_cycle()

    [(_, message)] = channel.sent
    assert message.title == "Vasco vence"
    assert message.body == "Resumo."
    assert message.url == item.id
    assert message.image_url == "https://img.test/a.jpg"
    assert message.category == "futebol"


async def test_failed_delivery_does_not_block_other_destinations_or_ledger():
    item = article("futebol/a")
    channel = RecordingChannel(fail_for={"broken"})
    dispatcher, _, ledger, _, _ = make_dispatcher(
        [item], [destination("broken"), destination("ok")], channel=channel
    )

    report = await dispatcher.run_cycle()

    assert channel.recipients == ["ok"]
    assert report.failed_deliveries == 1
    assert await ledger.has(item.id)


async def test_provider_failure_delivers_raw_body():
    item = article("futebol/a", body="Texto original da notícia.")
    dispatcher, _, _, _, channel = make_dispatcher(
        [item], [destination("d1")], provider=FakeProvider(error=ProviderError("down", provider="fake"))
    )

    await dispatcher.run_cycle()

    [(_, message)] = channel.sent
    assert message.body == "Texto original da notícia."


async def test_ledger_write_failure_does_not_abort_cycle():
    class ReadOnlyLedger(MemoryLedger):
        async def _add(self, item_id):
            raise OSError("disk full")

    items = [article("futebol/a"), article("futebol/b")]
    dispatcher, _, _, _, channel = make_dispatcher(items, [destination("d1")], ledger=ReadOnlyLedger())

    report = await dispatcher.run_cycle()

    assert report.delivered == 2
    assert len(channel.sent) == 2


async def test_items_are_processed_in_source_order():
    items = [article("futebol/a", title="A"), article("base/b", title="B"), article("futebol/c", title="C")]
    dispatcher, _, _, _, channel = make_dispatcher(items, [destination("d1")])

    await dispatcher.run_cycle()

    assert [m.title for _, m in channel.sent] == ["A", "B", "C"]


async def test_pending_lists_only_unseen_items():
    items = [article("futebol/a"), article("futebol/b")]
    dispatcher, _, ledger, provider, _ = make_dispatcher(items, [destination("d1")])
    await ledger.add(items[0].id)

    pending = await dispatcher.pending()

    assert [i.id for i in pending] == [items[1].id]
    assert provider.calls == []


async def test_process_url_runs_once():
    item = article("futebol/a")
    dispatcher, _, ledger, _, channel = make_dispatcher([item], [destination("d1")])

    assert await dispatcher.process_url(item.id) is True
    assert await dispatcher.process_url(item.id) is False
    assert channel.recipients == ["d1"]
    assert await ledger.has(item.id)


async def test_process_url_for_unfetchable_article():
    dispatcher, _, ledger, _, _ = make_dispatcher([], [destination("d1")])

    assert await dispatcher.process_url("https://www.centraldatoca.com.br/futebol/x/") is False
    assert await ledger.count() == 0

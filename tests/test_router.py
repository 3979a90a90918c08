from core.entities import Item
from processing.router import accepts, route, select_destinations, should_summarize
from fakes import article, destination


def test_allow_list_overrides_deny_list():
    dest = destination("d1", allow={"futebol"}, deny={"futebol"})
    item = article("futebol/vasco-vence")

    assert route(item, [dest]) == {"d1"}


def test_deny_list_applies_when_allow_list_is_empty():
    dest = destination("d1", deny={"feminino"})

    assert route(article("feminino/vasco-feminino-vence"), [dest]) == set()
    assert route(article("futebol/vasco-vence"), [dest]) == {"d1"}


def test_allow_list_is_case_insensitive():
    dest = destination("d1", allow={"Futebol"})
    item = article("FUTEBOL/vasco-vence")

    assert accepts(dest, item)


def test_allow_list_rejects_items_without_category():
    dest = destination("d1", allow={"futebol"})
    item = Item(id="https://www.centraldatoca.com.br/", title="Home")

    assert not accepts(dest, item)


def test_route_fans_out_to_every_accepting_destination():
    destinations = [
        destination("all"),
        destination("base-only", allow={"base"}),
        destination("no-feminino", deny={"feminino"}),
    ]

    assert route(article("futebol/a"), destinations) == {"all", "no-feminino"}
    assert route(article("base/b"), destinations) == {"all", "base-only", "no-feminino"}
    assert [d.destination_id for d in select_destinations(article("feminino/c"), destinations)] == ["all"]


def test_gate_closes_when_every_filtered_destination_rejects():
    destinations = [destination("d1", allow={"base"}), destination("d2", deny={"futebol"})]

    assert not should_summarize(article("futebol/vasco-vence"), destinations)


def test_gate_stays_open_for_unfiltered_destinations():
    destinations = [destination("d1", allow={"base"}), destination("open")]

    assert should_summarize(article("futebol/vasco-vence"), destinations)


def test_gate_open_when_a_filtered_destination_accepts():
    destinations = [destination("d1", allow={"base"}), destination("d2", allow={"futebol"})]

    assert should_summarize(article("futebol/vasco-vence"), destinations)

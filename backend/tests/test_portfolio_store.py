import json
import itertools

import pytest

from coinbox.core.errors import NotFound, ValidationError
from coinbox.core.store import MemoryStore, StoreKeys
from coinbox.services.portfolio_store import PortfolioStore


def sequential_ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def portfolio(store):
    return PortfolioStore(store, id_factory=sequential_ids())


async def stored_rows(store):
    return json.loads(await store.get(StoreKeys.PORTFOLIO))


async def test_add_appends_and_persists(portfolio, store):
    holding = await portfolio.add("btc", 2, 100)
    assert holding.symbol == "BTC"
    assert holding.id == "id-1"
    assert await stored_rows(store) == [
        {"id": "id-1", "symbol": "BTC", "amount": 2.0, "manual_unit_price": 100.0}
    ]


@pytest.mark.parametrize(
    "args, field",
    [
        (("", 1, 10), "symbol"),
        (("   ", 1, 10), "symbol"),
        (("BTC", 0, 10), "amount"),
        (("BTC", -1, 10), "amount"),
        (("BTC", "abc", 10), "amount"),
        (("BTC", float("nan"), 10), "amount"),
        (("BTC", 1, -5), "manual_unit_price"),
        (("BTC", 1, float("inf")), "manual_unit_price"),
    ],
)
async def test_add_rejects_invalid_input(portfolio, store, args, field):
    with pytest.raises(ValidationError) as exc_info:
        await portfolio.add(*args)
    assert exc_info.value.field == field
    assert portfolio.holdings == ()
    assert await store.get(StoreKeys.PORTFOLIO) is None


async def test_zero_manual_price_is_allowed(portfolio):
    holding = await portfolio.add("ETH", 1, 0)
    assert holding.manual_unit_price == 0


async def test_duplicate_symbols_are_independent_by_default(portfolio):
    first = await portfolio.add("BTC", 1, 10)
    second = await portfolio.add("BTC", 2, 20)
    assert first.id != second.id
    assert [h.amount for h in portfolio.holdings] == [1, 2]
    assert portfolio.symbols() == ["BTC"]


async def test_merge_policy_increments_existing_amount(store):
    portfolio = PortfolioStore(store, duplicate_policy="merge", id_factory=sequential_ids())
    first = await portfolio.add("BTC", 1, 10)
    merged = await portfolio.add("btc", 2, 0)
    assert merged.id == first.id
    assert len(portfolio.holdings) == 1
    assert merged.amount == 3
    assert merged.manual_unit_price == 10

    await portfolio.add("BTC", 1, 15)
    assert portfolio.holdings[0].manual_unit_price == 15


async def test_remove_unknown_id_is_noop(portfolio):
    await portfolio.add("BTC", 1, 10)
    before = portfolio.holdings
    assert await portfolio.remove("missing") is False
    assert portfolio.holdings == before


async def test_remove_persists(portfolio, store):
    first = await portfolio.add("BTC", 1, 10)
    await portfolio.add("ETH", 1, 10)
    assert await portfolio.remove(first.id) is True
    assert [row["symbol"] for row in await stored_rows(store)] == ["ETH"]


async def test_edit_updates_in_place(portfolio, store):
    holding = await portfolio.add("BTC", 1, 10)
    edited = await portfolio.edit(holding.id, {"amount": 4, "manual_unit_price": 12})
    assert edited is holding
    assert (holding.amount, holding.manual_unit_price) == (4, 12)
    assert (await stored_rows(store))[0]["amount"] == 4


async def test_edit_unknown_id_raises_not_found(portfolio):
    with pytest.raises(NotFound):
        await portfolio.edit("missing", {"amount": 1})


async def test_edit_is_atomic_on_validation_failure(portfolio):
    holding = await portfolio.add("BTC", 1, 10)
    with pytest.raises(ValidationError):
        await portfolio.edit(holding.id, {"amount": 5, "manual_unit_price": -1})
    assert (holding.amount, holding.manual_unit_price) == (1, 10)


async def test_edit_cannot_change_symbol(portfolio):
    holding = await portfolio.add("BTC", 1, 10)
    with pytest.raises(ValidationError) as exc_info:
        await portfolio.edit(holding.id, {"symbol": "ETH"})
    assert exc_info.value.field == "symbol"
    assert holding.symbol == "BTC"


async def test_clear_empties_and_persists(portfolio, store):
    await portfolio.add("BTC", 1, 10)
    await portfolio.clear()
    assert portfolio.holdings == ()
    assert await stored_rows(store) == []


async def test_load_round_trips_snapshot(store):
    writer = PortfolioStore(store, id_factory=sequential_ids())
    await writer.add("BTC", 2, 100)
    await writer.add("ETH", 1, 5)

    reader = PortfolioStore(store)
    assert await reader.load() == 2
    assert [(h.symbol, h.amount) for h in reader.holdings] == [("BTC", 2), ("ETH", 1)]


async def test_load_reads_mobile_app_snapshot(store):
    await store.set_json(
        StoreKeys.PORTFOLIO,
        [{"id": "1700000000000", "symbol": "sol", "amount": "3", "priceRUB": "15000"}],
    )
    portfolio = PortfolioStore(store)
    await portfolio.load()
    holding = portfolio.holdings[0]
    assert (holding.symbol, holding.amount, holding.manual_unit_price) == ("SOL", 3.0, 15000.0)


async def test_load_treats_corrupt_data_as_empty(store):
    await store.set(StoreKeys.PORTFOLIO, b"\x00garbage")
    portfolio = PortfolioStore(store)
    assert await portfolio.load() == 0


async def test_load_skips_unreadable_rows(store):
    await store.set_json(StoreKeys.PORTFOLIO, [{"symbol": "BTC"}, {"id": "a", "symbol": "ETH", "amount": 1}])
    portfolio = PortfolioStore(store)
    assert await portfolio.load() == 1


async def test_persistence_failure_does_not_block_mutation():
    class FailingStore(MemoryStore):
        async def set(self, key, value):
            raise ConnectionError("disk full")

    portfolio = PortfolioStore(FailingStore())
    holding = await portfolio.add("BTC", 1, 10)
    assert portfolio.holdings == (holding,)

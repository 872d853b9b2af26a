
from coinbox.core.errors import MalformedResponse
from coinbox.services.price_aggregator import PriceAggregator

from conftest import ScriptedPriceSource, network_down


async def test_all_symbols_succeed():
    aggregator = PriceAggregator(ScriptedPriceSource({"BTC": 1.0, "ETH": 2.0}))
    prices = await aggregator.aggregate(["BTC", "ETH"])
    assert {s: q.unit_price_base for s, q in prices.items()} == {"BTC": 1.0, "ETH": 2.0}


async def test_one_failure_leaves_n_minus_one_entries():
    source = ScriptedPriceSource({
        "BTC": 1.0,
        "ETH": network_down("ETH"),
        "SOL": 3.0,
    })
    aggregator = PriceAggregator(source)
    prices = await aggregator.aggregate(["BTC", "ETH", "SOL"])
    assert sorted(prices) == ["BTC", "SOL"]
    assert "ETH" in aggregator.last_failures


async def test_every_failure_kind_is_absorbed():
    source = ScriptedPriceSource({
        "BTC": 1.0,
        "ETH": MalformedResponse("bad"),
        "SOL": RuntimeError("boom"),
    })
    prices = await PriceAggregator(source).aggregate(["BTC", "ETH", "SOL", "DOGE"])
    assert list(prices) == ["BTC"]


async def test_empty_symbol_set_yields_empty_map():
    source = ScriptedPriceSource({"BTC": 1.0})
    aggregator = PriceAggregator(source)
    assert await aggregator.aggregate([]) == {}
    assert source.calls == []


async def test_symbols_are_deduplicated_and_normalised():
    source = ScriptedPriceSource({"BTC": 1.0})
    await PriceAggregator(source).aggregate(["btc", "BTC", " BTC "])
    assert source.calls == ["BTC"]


async def test_new_result_replaces_previous_map():
    source = ScriptedPriceSource({"BTC": 1.0, "ETH": 2.0})
    aggregator = PriceAggregator(source)
    await aggregator.aggregate(["BTC", "ETH"])

    source.outcomes["ETH"] = network_down()
    prices = await aggregator.aggregate(["BTC", "ETH"])
    assert list(prices) == ["BTC"]


async def test_single_symbol_failure_returns_empty_map():
    source = ScriptedPriceSource({"BTC": 1.0})
    aggregator = PriceAggregator(source)
    assert len(await aggregator.aggregate(["BTC"])) == 1

    source.outcomes["BTC"] = network_down()
    prices = await aggregator.aggregate(["BTC"])
    assert len(prices) == 0
    assert aggregator.outage is True


async def test_only_unsupported_symbols_publish_empty_map():
    source = ScriptedPriceSource({"BTC": 1.0})
    aggregator = PriceAggregator(source)
    await aggregator.aggregate(["BTC"])
    source.outcomes = {}
    assert await aggregator.aggregate(["BTC"]) == {}
    assert aggregator.outage is False


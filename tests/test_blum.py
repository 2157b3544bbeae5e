import math

import pytest

from arch_mcp import blum

SOLANA_CSV = """token_address,name,symbol,decimals,logo_uri
So11111111111111111111111111111111111111112,Wrapped SOL,SOL,9,https://example.com/sol.png
EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v,USD Coin,USDC,6,
BadDecimals111111111111111111111111111111111,Broken Token,BRKN,six,
"""

BNB_CSV = """token_address,name,symbol,decimals,logo_uri
0x55d398326f99059fF775485246999027B3197955,Tether USD,USDT,18,
0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d,USD Coin,USDC,18,
"""

TON_CSV = """token_address,name,symbol,decimals,logo_uri
EQCxE6mUtQJKFnGfaROTKOt1lZbDiiX1kCixRv7Nw2Id_sDs,Tether USD,USDT,6,
"""


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "solana1000.csv").write_text(SOLANA_CSV, encoding="utf-8")
    (tmp_path / "bnb1000.csv").write_text(BNB_CSV, encoding="utf-8")
    (tmp_path / "ton1000.csv").write_text(TON_CSV, encoding="utf-8")
    return tmp_path


@pytest.mark.asyncio
async def test_read_csv_file_parses_rows(data_dir):
    tokens = await blum.read_csv_file(data_dir / "solana1000.csv", "solana")

    assert len(tokens) == 3
    sol = tokens[0]
    assert sol["symbol"] == "SOL"
    assert sol["decimals"] == 9
    assert isinstance(sol["decimals"], int)
    assert sol["logo_uri"] == "https://example.com/sol.png"
    assert sol["network"] == "solana"
    assert tokens[1]["logo_uri"] is None


@pytest.mark.asyncio
async def test_non_numeric_decimals_become_nan(data_dir):
    tokens = await blum.read_csv_file(data_dir / "solana1000.csv", "solana")

    assert math.isnan(tokens[2]["decimals"])


@pytest.mark.asyncio
async def test_missing_file_yields_no_tokens(tmp_path):
    assert await blum.read_csv_file(tmp_path / "nope.csv", "solana") == []


@pytest.mark.asyncio
async def test_search_single_network(data_dir):
    tokens = await blum.search_blum_tokens("usd", network="bnb", data_dir=data_dir)

    assert [t["symbol"] for t in tokens] == ["USDT", "USDC"]
    assert {t["network"] for t in tokens} == {"bnb"}


@pytest.mark.asyncio
async def test_search_all_networks_is_case_insensitive(data_dir):
    tokens = await blum.search_blum_tokens("TeThEr", data_dir=data_dir)

    assert [(t["network"], t["symbol"]) for t in tokens] == [("bnb", "USDT"), ("ton", "USDT")]


@pytest.mark.asyncio
async def test_search_all_networks_skips_missing_file(data_dir):
    (data_dir / "bnb1000.csv").unlink()

    tokens = await blum.search_blum_tokens("usd", data_dir=data_dir)

    assert [(t["network"], t["symbol"]) for t in tokens] == [("solana", "USDC"), ("ton", "USDT")]


@pytest.mark.asyncio
async def test_empty_query_returns_everything_up_to_limit(data_dir):
    assert len(await blum.search_blum_tokens("", data_dir=data_dir)) == 6
    assert len(await blum.search_blum_tokens("", limit=4, data_dir=data_dir)) == 4


@pytest.mark.asyncio
async def test_unknown_network_is_rejected(data_dir):
    with pytest.raises(ValueError, match="Unsupported network"):
        await blum.search_blum_tokens("usd", network="eth", data_dir=data_dir)


@pytest.mark.asyncio
async def test_bundled_listings_are_searchable():
    tokens = await blum.search_blum_tokens("usd coin")

    assert {t["network"] for t in tokens} == {"solana", "bnb"}


@pytest.mark.asyncio
async def test_multiple_isolates_a_failing_query(monkeypatch):
    async def fake_search(query, network=None, limit=10, data_dir=None):
        if query == "boom":
            raise OSError("disk unavailable")
        return [{"symbol": query.upper(), "network": network or "solana"}]

    monkeypatch.setattr(blum, "search_blum_tokens", fake_search)

    results = await blum.search_blum_tokens_multiple(["sol", "usdc", "boom", "usdt", "cake"])

    assert len(results) == 5
    assert results[2] == {"query": "boom", "tokens": [], "success": False, "error": "disk unavailable"}
    for i, query in ((0, "sol"), (1, "usdc"), (3, "usdt"), (4, "cake")):
        assert results[i]["success"] is True
        assert results[i]["tokens"] == [{"symbol": query.upper(), "network": "solana"}]


@pytest.mark.asyncio
async def test_multiple_processes_at_most_five_queries(data_dir):
    queries = ["sol", "usdc", "usdt", "tether", "coin", "wrapped", "broken"]

    results = await blum.search_blum_tokens_multiple(queries, limit=1, data_dir=data_dir)

    assert [r["query"] for r in results] == queries[:5]
    assert all(r["success"] and len(r["tokens"]) <= 1 for r in results)


@pytest.mark.asyncio
async def test_infinite_decimals_become_nan_without_breaking_other_networks(data_dir):
    (data_dir / "solana1000.csv").write_text(
        "token_address,name,symbol,decimals,logo_uri\n"
        "Good111,Good Token,GOOD,9,\n"
        "Weird111,Weird Token,WRD,inf,\n"
        "Huge111,Huge Token,HUGE,1e400,\n",
        encoding="utf-8",
    )

    tokens = await blum.search_blum_tokens("", data_dir=data_dir)

    by_symbol = {t["symbol"]: t for t in tokens}
    assert by_symbol["GOOD"]["decimals"] == 9
    assert math.isnan(by_symbol["WRD"]["decimals"])
    assert math.isnan(by_symbol["HUGE"]["decimals"])
    assert {t["network"] for t in tokens} == {"solana", "bnb", "ton"}

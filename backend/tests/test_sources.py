from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from trendinghub.core.config import Settings
from trendinghub.services.base import ResponseTooLargeError, SourceFetchError
from trendinghub.services.sources.ashare_index import (
    AShareSource,
    code_to_secid,
    parse_eastmoney_quote,
    parse_sina_quotes,
    parse_stock_codes,
)
from trendinghub.services.sources.baidu_hot import parse_baidu_board
from trendinghub.services.sources.github_trending import parse_stars, parse_trending_page
from trendinghub.services.sources.gold_price import (
    DEFAULT_GOLD_API_URL,
    is_allowed_gold_api_url,
    parse_gold_payload,
    resolve_gold_api_url,
)
from trendinghub.services.sources.hackernews import HackerNewsSource
from trendinghub.services.sources.http import read_limited
from trendinghub.services.sources.registry import build_source_jobs
from trendinghub.services.sources.x_trends import (
    XTrendsSource,
    parse_trend_links,
    to_x_search_url,
    trends_to_items,
)

NOW = datetime(2024, 1, 3, 4, 0, tzinfo=timezone.utc)


# ============ HTTP ============


class FakeContent:
    def __init__(self, chunks):
        self.chunks = chunks

    async def iter_chunked(self, size):
        for chunk in self.chunks:
            yield chunk


class FakeResponse:
    def __init__(self, chunks, content_length=None):
        self.content = FakeContent(chunks)
        self.content_length = content_length
        self.url = "https://example.test/body"


@pytest.mark.asyncio
async def test_read_limited_returns_body_within_ceiling() -> None:
    body = await read_limited(FakeResponse([b"abc", b"def"]), max_bytes=6)
    assert body == b"abcdef"


@pytest.mark.asyncio
async def test_read_limited_rejects_streamed_overflow() -> None:
    with pytest.raises(ResponseTooLargeError):
        await read_limited(FakeResponse([b"a" * 40, b"b" * 40]), max_bytes=64)


@pytest.mark.asyncio
async def test_read_limited_rejects_declared_length() -> None:
    with pytest.raises(SourceFetchError):
        await read_limited(FakeResponse([b"x"], content_length=10_000), max_bytes=64)


# ============ Baidu ============


def baidu_page(entries) -> str:
    state = {"data": {"cards": [{"content": entries}]}}
    return f"<html><!--s-data:{json.dumps(state, ensure_ascii=False)}--></html>"


def test_baidu_board_skips_pinned_and_ranks_by_position() -> None:
    html = baidu_page([
        {"word": "置顶", "isTop": True, "rawUrl": "https://top.baidu.com/pinned"},
        {"word": "第一", "desc": "描述一", "rawUrl": "https://www.baidu.com/s?wd=1"},
        {"word": "第二", "rawUrl": "https://www.baidu.com/s?wd=2"},
    ])

    items = parse_baidu_board(html, NOW)

    assert [i.title for i in items] == ["第一", "第二"]
    assert [i.hot_score for i in items] == [2.0, 1.0]
    assert items[0].description == "描述一"
    assert items[1].description == "第二"
    assert items[0].raw_data["rank"] == 2
    assert all(i.source == "baidu" for i in items)


def test_baidu_board_without_state_is_empty() -> None:
    assert parse_baidu_board("<html>maintenance</html>", NOW) == []


def test_baidu_board_with_broken_json_raises() -> None:
    with pytest.raises(SourceFetchError):
        parse_baidu_board("<!--s-data:{not json-->", NOW)


# ============ Gold ============


def test_gold_url_allow_list() -> None:
    assert is_allowed_gold_api_url("https://data-asg.goldprice.org/dbXRates/USD")
    assert is_allowed_gold_api_url("https://www.data-goldprice.org/x")
    assert not is_allowed_gold_api_url("http://data-asg.goldprice.org/dbXRates/CNY")
    assert not is_allowed_gold_api_url("https://evil.example/dbXRates/CNY")
    assert resolve_gold_api_url("https://evil.example/") == DEFAULT_GOLD_API_URL
    assert resolve_gold_api_url("") == DEFAULT_GOLD_API_URL


def test_gold_payload_uses_quote_time() -> None:
    payload = {"tsj": 1704254400000, "items": [{"curr": "CNY", "xauPrice": 14712.5}]}

    items = parse_gold_payload(payload, DEFAULT_GOLD_API_URL)

    assert len(items) == 1
    assert items[0].hot_score == 14712.5
    assert items[0].published_at == datetime(2024, 1, 3, 4, 0, tzinfo=timezone.utc)
    assert items[0].url == DEFAULT_GOLD_API_URL
    assert items[0].source == "gold"


def test_gold_payload_without_items_is_empty() -> None:
    assert parse_gold_payload({"items": []}, DEFAULT_GOLD_API_URL) == []


# ============ A-share ============


@pytest.mark.parametrize(
    "code,expected",
    [
        ("600519", "1.600519"),
        ("900901", "1.900901"),
        ("000858", "0.000858"),
        ("300750", "0.300750"),
        ("", ""),
    ],
)
def test_code_to_secid(code: str, expected: str) -> None:
    assert code_to_secid(code) == expected


def test_parse_stock_codes() -> None:
    assert parse_stock_codes(" 600519, ,000858,") == ["600519", "000858"]
    assert parse_stock_codes("") == []


def test_parse_sina_quotes() -> None:
    body = (
        'var hq_str_s_sh000001="上证指数,2967.2520,-4.8430,-0.16,3155264,33123456";\n'
        'var hq_str_s_sz399001="深证成指,9224.5740,12.32,0.13,1,2";\n'
        'var hq_str_s_sz399006="";\n'
    )

    items = parse_sina_quotes(body, NOW)

    assert [i.title for i in items] == ["上证指数", "深证成指"]
    assert items[0].url == "https://finance.sina.com.cn/realstock/index/s_sh000001.html"
    assert items[0].hot_score == pytest.approx(2967.252)
    assert "-0.16%" in items[0].description


def test_parse_eastmoney_quote() -> None:
    payload = {"data": {"f43": 1688.0, "f57": "600519", "f58": "贵州茅台", "f170": 1.25}}

    item = parse_eastmoney_quote("600519", payload, NOW)

    assert item.title == "贵州茅台"
    assert item.url == "https://quote.eastmoney.com/unify/r/1.600519"
    assert item.hot_score == 1688.0
    assert parse_eastmoney_quote("600519", {"data": {"f43": "-"}}, NOW) is None
    assert parse_eastmoney_quote("600519", {"data": None}, NOW) is None


@pytest.mark.asyncio
async def test_ashare_stock_fan_out_keeps_input_order(monkeypatch) -> None:
    async def list_codes():
        return ["000858", "600519", "300750"]

    source = AShareSource(list_stock_codes=list_codes)

    async def fake_get_bytes(url, max_bytes, headers=None, timeout=None):
        if "sinajs" in url:
            return 'var hq_str_s_sh000001="上证指数,2967.25,-4.84,-0.16,1,2";'.encode("gbk")
        if "0.300750" in url:
            raise SourceFetchError("ashare_index", "timeout")
        secid = url.split("secid=")[1].split("&")[0]
        return json.dumps({"data": {"f43": 10.0, "f58": secid}}).encode()

    monkeypatch.setattr(source, "get_bytes", fake_get_bytes)

    items = await source.fetch()

    assert [i.title for i in items] == ["上证指数", "0.000858", "1.600519"]


# ============ Hacker News ============


@pytest.mark.asyncio
async def test_hackernews_fetch_keeps_rank_order_and_skips_bad_items(monkeypatch) -> None:
    source = HackerNewsSource(max_items=4, concurrency=2)
    stories = {
        1: {"id": 1, "type": "story", "title": "First", "url": "https://a.example", "score": 10, "time": 1704254400},
        2: {"id": 2, "type": "job", "title": "Hiring"},
        3: {"id": 3, "type": "story", "title": "Ask HN: no url", "score": 3},
    }

    async def fake_get_json(url, timeout=None):
        if url.endswith("topstories.json"):
            return [1, 2, 3, 4, 5]
        item_id = int(url.rsplit("/", 1)[1].split(".")[0])
        if item_id == 4:
            raise SourceFetchError("hackernews_top", "timeout")
        return stories.get(item_id)

    monkeypatch.setattr(source, "_get_json", fake_get_json)

    items = await source.fetch()

    assert [i.title for i in items] == ["First", "Ask HN: no url"]
    assert items[1].url == "https://news.ycombinator.com/item?id=3"
    assert items[0].hot_score == 10.0
    assert items[1].raw_data["rank"] == 3


# ============ GitHub ============


@pytest.mark.parametrize(
    "text,expected",
    [("1,234", 1234), ("12.3k", 12300), ("2K", 2000), ("", 0), ("n/a", 0)],
)
def test_parse_stars(text: str, expected: int) -> None:
    assert parse_stars(text) == expected


TRENDING_HTML = """
<div>
  <article class="Box-row">
    <h2><a href="/openai/codex">openai /
      codex</a></h2>
    <p>Lightweight coding agent</p>
    <a href="/openai/codex/stargazers">12.3k</a>
  </article>
  <article class="Box-row">
    <h2><a href="/someone/empty">someone / empty</a></h2>
  </article>
  <article class="Box-row"><h2>no link</h2></article>
</div>
"""


def test_parse_trending_page() -> None:
    items = parse_trending_page(TRENDING_HTML, NOW)

    assert [i.title for i in items] == ["openai/codex", "someone/empty"]
    assert items[0].url == "https://github.com/openai/codex"
    assert items[0].hot_score == 12300.0
    assert items[0].description == "Lightweight coding agent"
    assert items[1].hot_score == 0.0
    assert items[1].summary == "someone/empty"


# ============ X ============


def test_to_x_search_url() -> None:
    assert to_x_search_url("https://twitter.com/search?q=%23AI") == "https://x.com/search?q=%23AI"
    assert to_x_search_url("https://x.com/search?q=a") == "https://x.com/search?q=a"


def test_parse_trend_links_dedupes_in_page_order() -> None:
    html = """
    <ol>
      <li><a href="https://twitter.com/search?q=%23AI">#AI</a></li>
      <li><a href="https://twitter.com/search?q=Python">Python</a></li>
      <li><a href="https://twitter.com/search?q=%23AI">#AI</a></li>
    </ol>
    """
    assert parse_trend_links(html) == [
        ("#AI", "https://x.com/search?q=%23AI"),
        ("Python", "https://x.com/search?q=Python"),
    ]


def test_parse_trend_links_falls_back_to_query_text() -> None:
    html = '<a href="https://twitter.com/search?q=Hello+World"></a>'
    assert parse_trend_links(html) == [("Hello World", "https://x.com/search?q=Hello+World")]


def test_trends_to_items_caps_and_scores() -> None:
    trends = [(f"t{i}", f"https://x.com/search?q=t{i}") for i in range(60)]
    items = trends_to_items(trends, NOW)
    assert len(items) == 50
    assert items[0].hot_score == 50.0
    assert items[-1].hot_score == 1.0


@pytest.mark.asyncio
async def test_x_trends_falls_back_then_raises_when_all_fail(monkeypatch) -> None:
    source = XTrendsSource()
    calls = []

    async def failing(url, max_bytes, headers=None, timeout=None):
        calls.append(url)
        raise SourceFetchError("x_trends", "503")

    monkeypatch.setattr(source, "get_bytes", failing)
    with pytest.raises(SourceFetchError):
        await source.fetch()
    assert len(calls) == 2

    async def second_works(url, max_bytes, headers=None, timeout=None):
        if url.endswith("united-states/"):
            return b'<a href="https://twitter.com/search?q=Nvidia">Nvidia</a>'
        raise SourceFetchError("x_trends", "503")

    monkeypatch.setattr(source, "get_bytes", second_works)
    items = await source.fetch()
    assert [i.title for i in items] == ["Nvidia"]


# ============ Registry ============


def test_registry_builds_one_job_per_source() -> None:
    jobs = build_source_jobs(settings=Settings(ashare_cron="*/2 * * * *"))
    by_name = {job.name: job for job in jobs}

    assert set(by_name) == {
        "baidu_hot",
        "gold_price",
        "ashare_index",
        "hackernews_top",
        "github_trending",
        "x_trends",
    }
    assert by_name["ashare_index"].cron_spec == "*/2 * * * *"
    assert by_name["ashare_index"].gate is not None
    assert by_name["baidu_hot"].gate is None

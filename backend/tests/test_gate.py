from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import make_record

from trendinghub.core.clock import CIVIL_TZ, civil_date_str
from trendinghub.core.market_hours import (
    MarketSession,
    get_market_session,
    get_market_status,
    is_market_open,
    parse_sessions,
)
from trendinghub.services.gate.trading_session import TradingSessionGate
from trendinghub.services.sources.registry import build_ashare_gate


def civil(year: int, month: int, day: int, hour: int, minute: int) -> datetime:
    return CIVIL_TZ.localize(datetime(year, month, day, hour, minute))


# 2024-01-03 is a Wednesday
WEDNESDAY = (2024, 1, 3)


@pytest.mark.parametrize(
    "hour,minute,expected",
    [
        (9, 30, True),
        (11, 30, True),
        (11, 31, False),
        (13, 0, True),
        (15, 0, True),
        (15, 1, False),
        (9, 29, False),
        (12, 0, False),
    ],
)
def test_session_boundaries(hour: int, minute: int, expected: bool) -> None:
    assert is_market_open(civil(*WEDNESDAY, hour, minute)) is expected


@pytest.mark.parametrize("day", [6, 7])
@pytest.mark.parametrize("hour,minute", [(9, 30), (10, 0), (13, 0), (14, 59)])
def test_weekend_is_always_closed(day: int, hour: int, minute: int) -> None:
    moment = civil(2024, 1, day, hour, minute)
    assert is_market_open(moment) is False
    assert get_market_session(moment) == MarketSession.CLOSED


def test_session_is_evaluated_in_civil_time() -> None:
    # 01:30 UTC == 09:30 Shanghai
    assert is_market_open(datetime(2024, 1, 3, 1, 30, tzinfo=timezone.utc)) is True
    # 09:30 UTC == 17:30 Shanghai
    assert is_market_open(datetime(2024, 1, 3, 9, 30, tzinfo=timezone.utc)) is False


def test_market_sessions_by_time_of_day() -> None:
    assert get_market_session(civil(*WEDNESDAY, 8, 0)) == MarketSession.PRE_OPEN
    assert get_market_session(civil(*WEDNESDAY, 12, 0)) == MarketSession.BREAK
    assert get_market_session(civil(*WEDNESDAY, 16, 0)) == MarketSession.POST_CLOSE


def test_parse_sessions_falls_back_to_defaults() -> None:
    sessions = parse_sessions("13:00-15:00, 09:30-11:30")
    assert [(s.start, s.end) for s in sessions] == [("09:30", "11:30"), ("13:00", "15:00")]
    assert parse_sessions("garbage") == parse_sessions("")


def test_market_status_next_open_on_friday_evening() -> None:
    status = get_market_status(civil(2024, 1, 5, 20, 0))
    assert status["is_open"] is False
    assert status["next_open"].startswith("2024-01-08T09:30")


def test_decide_open_market_allows() -> None:
    decision = TradingSessionGate().decide(civil(*WEDNESDAY, 10, 0))
    assert decision.allowed is True
    assert decision.market_open is True


def test_decide_closed_without_data_check_skips() -> None:
    decision = TradingSessionGate().decide(civil(*WEDNESDAY, 20, 0), has_today_data=None)
    assert decision.allowed is False


def test_decide_closed_trading_day_backfills_once() -> None:
    gate = TradingSessionGate()
    assert gate.decide(civil(*WEDNESDAY, 20, 0), has_today_data=False).allowed is True
    assert gate.decide(civil(*WEDNESDAY, 20, 0), has_today_data=True).allowed is False


def test_decide_weekend_never_backfills() -> None:
    decision = TradingSessionGate().decide(civil(2024, 1, 6, 10, 0), has_today_data=False)
    assert decision.allowed is False
    assert decision.trading_day is False


@pytest.mark.asyncio
async def test_evaluate_only_checks_store_when_closed() -> None:
    calls: list[datetime] = []

    async def has_today_data(now: datetime) -> bool:
        calls.append(now)
        return False

    gate = TradingSessionGate(has_today_data=has_today_data)

    assert (await gate.evaluate(civil(*WEDNESDAY, 10, 0))).allowed is True
    assert calls == []

    assert (await gate.evaluate(civil(*WEDNESDAY, 18, 0))).allowed is True
    assert len(calls) == 1

    assert (await gate.evaluate(civil(2024, 1, 7, 18, 0))).allowed is False
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_backfill_then_skip_after_store_write(store) -> None:
    gate = build_ashare_gate(store)
    closed = civil(*WEDNESDAY, 18, 0)

    first = await gate.evaluate(closed)
    assert first.allowed is True
    assert first.has_today_data is False

    published = closed.astimezone(timezone.utc)
    saved = await store.save_batch([
        make_record(
            "https://finance.sina.com.cn/realstock/index/s_sh000001.html",
            source="ashare",
            published_at=published,
            published_date=civil_date_str(published),
        )
    ])
    assert saved == 1

    second = await gate.evaluate(closed)
    assert second.allowed is False
    assert second.has_today_data is True

    next_day = await gate.evaluate(civil(2024, 1, 4, 18, 0))
    assert next_day.allowed is True


def test_decision_carries_configured_windows() -> None:
    default = TradingSessionGate().decide(civil(*WEDNESDAY, 10, 0))
    assert default.sessions == ["09:30-11:30", "13:00-15:00"]

    gate = TradingSessionGate(sessions=parse_sessions("09:00-10:00"))
    decision = gate.decide(civil(*WEDNESDAY, 10, 30), has_today_data=True)
    assert decision.allowed is False
    assert decision.sessions == ["09:00-10:00"]
    assert decision.to_dict()["sessions"] == ["09:00-10:00"]

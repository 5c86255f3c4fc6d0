"""
Channel -> shard routing.

The set of channels is closed and known at startup. Each channel owns one
physical table; the "gold" channel is additionally exposed as a composite
read view over the gold and A-share shards.
"""

from dataclasses import dataclass

from trendinghub.schemas.news import ChannelCode


@dataclass(frozen=True)
class ChannelShard:
    """A channel and the table that stores its records."""

    code: ChannelCode
    table_name: str
    display_name: str
    base_url: str = ""


@dataclass(frozen=True)
class CompositeView:
    """
    A read-only channel backed by several shards.

    Each part is read oldest-first (for intraday charts) and capped at
    part_limit rows before the parts are concatenated.
    """

    code: ChannelCode
    parts: tuple[ChannelCode, ...]
    part_limit: int = 500


CHANNELS: tuple[ChannelShard, ...] = (
    ChannelShard(ChannelCode.GITHUB, "news_github", "GitHub Trending", "https://github.com/trending"),
    ChannelShard(ChannelCode.BAIDU, "news_baidu", "Baidu Hot Search", "https://top.baidu.com/board?tab=realtime"),
    ChannelShard(ChannelCode.GOLD, "news_gold", "Finance"),
    ChannelShard(ChannelCode.ASHARE, "news_ashare", "A-Share"),
    ChannelShard(ChannelCode.X, "news_x", "X Trends", "https://trends24.in/"),
    ChannelShard(ChannelCode.HACKERNEWS, "news_hackernews", "Hacker News", "https://news.ycombinator.com"),
)

COMPOSITE_VIEWS: tuple[CompositeView, ...] = (
    CompositeView(ChannelCode.GOLD, (ChannelCode.GOLD, ChannelCode.ASHARE)),
)


def parse_channel(value: str) -> ChannelCode | None:
    """Map a channel string to its code; None for unknown channels."""
    try:
        return ChannelCode(value.strip().lower())
    except ValueError:
        return None

"""
News Normalizer

Turns RawItem batches into storable NormalizedRecords:
- id is the sha1 fingerprint of the url
- duplicates within a batch are dropped (first occurrence wins)
- text fields are forced to valid UTF-8 and bounded in characters
- published_date is derived from published_at in civil time
"""

import hashlib
import logging
import re
from typing import Iterable, Optional, Union

from trendinghub.core.clock import civil_date_str, ensure_utc
from trendinghub.schemas.news import RawItem, NormalizedRecord

logger = logging.getLogger(__name__)

ELLIPSIS = "…"
DESCRIPTION_MAX_CHARS = 600
TITLE_MAX_CHARS = 512

_SURROGATES = re.compile("[\ud800-\udfff]")


def fingerprint(url: str) -> str:
    """Deterministic record id: hex sha1 of the url."""
    return hashlib.sha1(url.encode("utf-8", errors="replace")).hexdigest()


def to_valid_text(value: Union[str, bytes, None]) -> str:
    """
    Coerce to text that encodes cleanly as UTF-8.
    Invalid sequences become U+FFFD; NUL bytes are removed.
    """
    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    value = _SURROGATES.sub("�", value)
    return value.replace("\x00", "").strip()


def truncate_chars(value: str, limit: int) -> str:
    """
    Bound a string to at most limit characters.

    Cuts on character (code point) boundaries, never inside a multi-byte
    sequence. A truncated value ends with the ellipsis and is exactly
    limit characters long.
    """
    if limit <= 0:
        return ""
    if len(value) <= limit:
        return value
    if limit <= len(ELLIPSIS):
        return ELLIPSIS[:limit]
    return value[: limit - len(ELLIPSIS)] + ELLIPSIS


class NewsNormalizer:
    """
    Stateless batch normalizer.

    Input order is preserved; dedup state lives only for one process() call.
    """

    def __init__(
        self,
        description_max_chars: int = DESCRIPTION_MAX_CHARS,
        title_max_chars: int = TITLE_MAX_CHARS,
    ):
        self.description_max_chars = description_max_chars
        self.title_max_chars = title_max_chars

    def normalize(self, item: RawItem) -> Optional[NormalizedRecord]:
        """Normalize a single item. Returns None for items without a url."""
        url = to_valid_text(item.url)
        if not url:
            return None

        title = truncate_chars(to_valid_text(item.title), self.title_max_chars)

        description = to_valid_text(item.description) or to_valid_text(item.summary)
        if not description:
            description = title
        description = truncate_chars(description, self.description_max_chars)

        published_at = ensure_utc(item.published_at)

        return NormalizedRecord(
            id=fingerprint(url),
            title=title,
            url=url,
            source=item.source,
            description=description,
            published_at=published_at,
            published_date=civil_date_str(published_at),
            hot_score=item.hot_score,
            extra_data=dict(item.raw_data or {}),
        )

    def process(self, items: Iterable[RawItem]) -> list[NormalizedRecord]:
        """Normalize a batch, dropping later duplicates of the same id."""
        seen: set[str] = set()
        records = []
        dropped = 0

        for item in items:
            record = self.normalize(item)
            if record is None or record.id in seen:
                dropped += 1
                continue
            seen.add(record.id)
            records.append(record)

        if dropped:
            logger.debug(f"Normalizer dropped {dropped} duplicate or invalid items")

        return records

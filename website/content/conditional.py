"""Conditional HTTP validation state (ETag / Last-Modified)."""

import itertools
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional

from website.core.clock import utcnow
from website.core.hashing import Hasher
from website.content.models import ContentRecord

_ROTATIONS = itertools.count()


def format_http_date(moment: datetime) -> str:
    """Format a naive-UTC or aware datetime as an HTTP date.

    Args:
        moment: Time to format

    Returns:
        RFC 7231 date, e.g. ``Wed, 21 Oct 2026 07:28:00 GMT``
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return format_datetime(moment.astimezone(timezone.utc).replace(microsecond=0), usegmt=True)


@dataclass(frozen=True)
class CacheControlToken:
    """A ``(validator, last_modified)`` pair for one aggregate view."""

    validator: str
    last_modified: str

    @classmethod
    def fresh(cls, hasher: Hasher, now: Optional[datetime] = None) -> "CacheControlToken":
        """Build a new token from the current time.

        The validator is the digest of a timestamp plus a process-wide
        sequence number, so two rotations never produce the same value.
        """
        moment = now or utcnow()
        stamp = f"{moment.isoformat()}#{next(_ROTATIONS)}"
        return cls(
            validator=hasher.digest_text(stamp),
            last_modified=format_http_date(moment),
        )


class SharedValidator:
    """Holds the current token of an aggregate view.

    The token is replaced wholesale; readers get whichever complete token was
    current when they asked.
    """

    def __init__(self, hasher: Hasher, name: str = "aggregate"):
        self.hasher = hasher
        self.name = name
        self._lock = threading.Lock()
        self._token = CacheControlToken.fresh(hasher)

    def current(self) -> CacheControlToken:
        return self._token

    def rotate(self, now: Optional[datetime] = None) -> CacheControlToken:
        token = CacheControlToken.fresh(self.hasher, now)
        with self._lock:
            self._token = token
        return token


def item_validator(record: ContentRecord) -> CacheControlToken:
    """Per-item token: the record's content hash and last modification time."""
    moment = record.last_modified or utcnow()
    return CacheControlToken(
        validator=record.content_hash or "",
        last_modified=format_http_date(moment),
    )


def _strip_etag(value: str) -> str:
    value = value.strip()
    if value.startswith("W/"):
        value = value[2:]
    return value.strip('"')


def is_not_modified(
    token: CacheControlToken,
    if_none_match: Optional[str] = None,
    if_modified_since: Optional[str] = None,
) -> bool:
    """Decide whether a conditional request can be answered with 304.

    A supplied validator takes priority and must equal the current one; only
    without it is the modification time compared, and then by exact match.
    A request with neither header is always served fresh.

    Args:
        token: Current validator state of the resource
        if_none_match: Value of the ``If-None-Match`` header
        if_modified_since: Value of the ``If-Modified-Since`` header

    Returns:
        True if the client's copy is still current
    """
    if if_none_match is not None:
        candidates = [_strip_etag(v) for v in if_none_match.split(",")]
        return token.validator in candidates or "*" in candidates
    if if_modified_since is not None:
        return if_modified_since.strip() == token.last_modified
    return False

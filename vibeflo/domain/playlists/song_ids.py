"""Decide whether a client-supplied track id can be reused as a ``songs`` key.

Tracks that have never been saved carry client-made ids such as
``yt-dQw4w9WgXcQ`` or random strings, while saved tracks carry the stringified
primary key. Only the latter may be looked up; everything else produces a new
song row.
"""

from __future__ import annotations

import re
from typing import Optional, Union

# Postgres ``integer`` column range
MAX_SONG_ID = 2147483647

SCHEME_INTEGER = "integer"
SCHEME_UUID = "uuid"
SCHEMES = (SCHEME_INTEGER, SCHEME_UUID)

_DIGITS_RE = re.compile(r"^[0-9]+$")
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

SongId = Union[int, str]


def _parse_integer(raw: object) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip()
        if not _DIGITS_RE.match(text):
            return None
        value = int(text)
    else:
        return None
    if 1 <= value <= MAX_SONG_ID:
        return value
    return None


def _parse_uuid(raw: object) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not _UUID_RE.match(text):
        return None
    return text.lower()


def parse_reusable_song_id(raw: object, scheme: str = SCHEME_INTEGER) -> Optional[SongId]:
    """Return the database key encoded by ``raw`` or ``None`` when it cannot be one.

    >>> parse_reusable_song_id("42")
    42
    >>> parse_reusable_song_id("yt-abc") is None
    True
    """
    if scheme == SCHEME_INTEGER:
        return _parse_integer(raw)
    if scheme == SCHEME_UUID:
        return _parse_uuid(raw)
    raise ValueError(f"Unknown song id scheme: {scheme!r}")


__all__ = [
    "MAX_SONG_ID",
    "SCHEME_INTEGER",
    "SCHEME_UUID",
    "SCHEMES",
    "SongId",
    "parse_reusable_song_id",
]

"""
Record types for ban-list monitoring.

This module provides:
- BanRecord / UserCacheEntry: one entry of banned-players.json / usercache.json
- BanSnapshot: the decoded contents of a ban list at one point in time
- BanEvent / PardonEvent: what a classified log line reports
- JSON decoders for both list files
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Union

# File names the server writes under its working directory.
LOG_FILE_NAME = "latest.log"
BAN_LIST_FILE_NAME = "banned-players.json"
USER_CACHE_FILE_NAME = "usercache.json"

# Keys of one banned-players.json entry, in the order the server writes them.
BAN_FIELDS = ("uuid", "name", "created", "source", "expires", "reason")


@dataclass(frozen=True)
class BanRecord:
    """One entry of the server ban list."""

    uuid: str
    name: str
    created: str = ""
    source: str = ""
    expires: str = ""
    reason: str = ""

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the record: two records with the same key are the same ban."""
        return (self.uuid, self.name)

    @property
    def display_name(self) -> str:
        return self.name or self.uuid

    def to_dict(self) -> dict[str, str]:
        return {f: getattr(self, f) for f in BAN_FIELDS}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BanRecord":
        """Create from one decoded JSON object."""
        values = {f: _as_text(data.get(f), f) for f in BAN_FIELDS}
        if not values["uuid"] and not values["name"]:
            raise ValueError("ban entry has neither uuid nor name")
        return cls(**values)


@dataclass(frozen=True)
class UserCacheEntry:
    """One entry of usercache.json."""

    name: str
    uuid: str
    expires_on: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "uuid": self.uuid, "expiresOn": self.expires_on}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserCacheEntry":
        return cls(
            name=_as_text(data.get("name"), "name"),
            uuid=_as_text(data.get("uuid"), "uuid"),
            expires_on=_as_text(data.get("expiresOn"), "expiresOn"),
        )


class UserCache:
    """Name lookup by uuid, used when a pardon does not carry a display name."""

    def __init__(self, entries: Iterable[UserCacheEntry] = ()):
        self.entries = list(entries)
        self._by_uuid = {e.uuid.lower(): e for e in self.entries if e.uuid}

    def __len__(self) -> int:
        return len(self.entries)

    def name_for(self, uuid: str) -> str | None:
        entry = self._by_uuid.get(uuid.lower())
        if entry is None or not entry.name:
            return None
        return entry.name


class BanSnapshot:
    """
    Decoded contents of a ban list.

    Iteration follows file order. A later record whose key was already seen
    is dropped, so a snapshot never holds two records with the same key.
    Equality ignores order.
    """

    def __init__(self, records: Iterable[BanRecord] = ()):
        self._by_key: dict[tuple[str, str], BanRecord] = {}
        for record in records:
            self._by_key.setdefault(record.key, record)

    def __iter__(self) -> Iterator[BanRecord]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, BanRecord):
            return self._by_key.get(item.key) == item
        return item in self._by_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BanSnapshot):
            return NotImplemented
        return set(self._by_key.values()) == set(other._by_key.values())

    def __repr__(self) -> str:
        return f"BanSnapshot({len(self)} records)"

    def keys(self) -> set[tuple[str, str]]:
        return set(self._by_key)

    def get(self, key: tuple[str, str]) -> BanRecord | None:
        return self._by_key.get(key)

    def to_list(self) -> list[dict[str, str]]:
        return [r.to_dict() for r in self]


@dataclass(frozen=True)
class BanEvent:
    """A log line reporting a ban."""

    target: str
    issuer: str
    reason: str


@dataclass(frozen=True)
class PardonEvent:
    """A log line reporting a pardon."""

    target: str
    issuer: str


ParsedLogEvent = Union[BanEvent, PardonEvent, None]


def _as_text(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValueError(f"field '{field_name}' must be a scalar, got {type(value).__name__}")
    return str(value)


def _load_array(data: bytes | str, what: str) -> list[dict[str, Any]]:
    if isinstance(data, bytes):
        data = data.decode("utf-8-sig")
    if not data.strip():
        return []
    decoded = json.loads(data)
    if not isinstance(decoded, list):
        raise ValueError(f"{what} must be a JSON array, got {type(decoded).__name__}")
    for i, item in enumerate(decoded):
        if not isinstance(item, dict):
            raise ValueError(f"{what} entry {i} must be an object, got {type(item).__name__}")
    return decoded


def decode_ban_list(data: bytes | str) -> BanSnapshot:
    """
    Decode banned-players.json content.

    Raises ValueError (json.JSONDecodeError included) on malformed content.
    Empty content decodes to an empty snapshot.
    """
    return BanSnapshot(BanRecord.from_dict(item) for item in _load_array(data, "ban list"))


def decode_user_cache(data: bytes | str) -> UserCache:
    """Decode usercache.json content."""
    return UserCache(UserCacheEntry.from_dict(item) for item in _load_array(data, "user cache"))


def read_ban_list(path: Path) -> BanSnapshot:
    return decode_ban_list(path.read_bytes())


def read_user_cache(path: Path) -> UserCache:
    return decode_user_cache(path.read_bytes())

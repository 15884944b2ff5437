"""
Log line classifier.

Recognizes the two ways a Minecraft server logs a ban list change:

- plain:     "[03:05:13] [Server thread/INFO]: Banned bob: griefing"
- bracketed: "[03:05:13] [Server thread/INFO]: [Alice: Banned bob: griefing]"

The plain form is written when the console issues the command, so the
issuer is always the server. The bracketed form is the operator broadcast
and carries the issuing player.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Iterator

from .records import BanEvent, ParsedLogEvent, PardonEvent

logger = logging.getLogger(__name__)

# Length of "[03:05:13] [Server thread/INFO]: "
PREFIX_LENGTH = 33
SEPARATOR = ": "
SERVER_ISSUER = "Server"

_BANNED = "Banned "
_UNBANNED = "Unbanned "

_BRACKETED_BAN = re.compile(r"^\[(?P<issuer>[^\]:]+): Banned (?P<rest>.+)\]$")
_BRACKETED_PARDON = re.compile(r"^\[(?P<issuer>[^\]:]+): Unbanned (?P<target>[^\]:]+)\]$")


def _split_ban(rest: str) -> tuple[str, str]:
    """Split "<target>: <reason...>" keeping every reason segment."""
    target, *reason = rest.split(SEPARATOR)
    return target, SEPARATOR.join(reason)


def classify_line(line: str) -> ParsedLogEvent:
    """
    Classify one log line.

    Returns a BanEvent, a PardonEvent, or None for anything else
    (including lines too short to carry the timestamp prefix).
    """
    line = line.rstrip("\r\n")
    if len(line) <= PREFIX_LENGTH:
        return None
    text = line[PREFIX_LENGTH:]

    if text.startswith(_BANNED):
        target, reason = _split_ban(text[len(_BANNED):])
        if not target:
            return None
        return BanEvent(target=target, issuer=SERVER_ISSUER, reason=reason)

    if text.startswith(_UNBANNED):
        target = text[len(_UNBANNED):].split(SEPARATOR)[0]
        if not target:
            return None
        return PardonEvent(target=target, issuer=SERVER_ISSUER)

    m = _BRACKETED_BAN.match(text)
    if m:
        target, reason = _split_ban(m.group("rest"))
        if not target:
            return None
        return BanEvent(target=target, issuer=m.group("issuer"), reason=reason)

    m = _BRACKETED_PARDON.match(text)
    if m:
        return PardonEvent(target=m.group("target"), issuer=m.group("issuer"))

    return None


def classify_lines(lines: Iterable[str]) -> Iterator[BanEvent | PardonEvent]:
    """Yield the ban/pardon events found in `lines`, in order."""
    for line in lines:
        event = classify_line(line)
        if event is not None:
            logger.debug(f"Classified {event!r}")
            yield event

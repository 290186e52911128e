"""Tags outgoing text as plain text or a bare link."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from dm_chat.domain.value_objects.enums import ContentType

logger = logging.getLogger(__name__)

KNOWN_TLDS = frozenset(
    """
    ai app biz blog ca ch cn co com de dev edu es eu fm fr gg gov info io in it
    jp ly me mil net nl no online org pl ru se sh site store tech to tv uk us xyz
    """.split()
)

_TRAILING_PUNCT = ".,;:!?'\")]}>"
_LABEL = r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
_HOST = rf"(?P<host>(?:{_LABEL}\.)+(?P<tld>[a-z]{{2,24}})|localhost|\d{{1,3}}(?:\.\d{{1,3}}){{3}})"
_TAIL = r"(?::\d{1,5})?(?:[/?#]\S*)?"

_SCHEME_URL = re.compile(rf"(?:https?|ftp)://(?:[^\s/@]+@)?{_HOST}{_TAIL}", re.IGNORECASE)
_BARE_URL = re.compile(rf"{_HOST}{_TAIL}", re.IGNORECASE)
_EMAIL = re.compile(rf"(?:mailto:)?[\w.+-]+@(?:{_LABEL}\.)+[a-z]{{2,24}}", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class Link:
    kind: str  # "url" | "email"
    value: str
    start: int
    end: int


def _link_kind(token: str) -> str | None:
    if _EMAIL.fullmatch(token):
        return "email"
    if _SCHEME_URL.fullmatch(token):
        return "url"
    match = _BARE_URL.fullmatch(token)
    if match is None or match["tld"] is None:
        return None
    host = match["host"].lower()
    if host.startswith("www.") or match["tld"].lower() in KNOWN_TLDS:
        return "url"
    return None


def find_links(text: str) -> list[Link]:
    """Return every link-looking token in ``text``, trailing punctuation excluded."""
    links: list[Link] = []
    for token in re.finditer(r"\S+", text):
        value = token.group().rstrip(_TRAILING_PUNCT).lstrip("(<[")
        if not value:
            continue
        kind = _link_kind(value)
        if kind is not None:
            start = token.start() + token.group().index(value)
            links.append(Link(kind=kind, value=value, start=start, end=start + len(value)))
    return links


def classify(text: str) -> ContentType:
    """``LINK`` iff the whole trimmed text is exactly one URL, else ``TEXT``."""
    try:
        trimmed = text.strip()
        links = find_links(trimmed)
    except (AttributeError, TypeError, re.error):
        logger.debug("Unclassifiable input %r", text, exc_info=True)
        return ContentType.TEXT
    if links and links[0].kind == "url" and links[0].value == trimmed:
        return ContentType.LINK
    return ContentType.TEXT

"""HTTP cookies and cookie collections."""

from __future__ import annotations

import enum
import ipaddress
import re
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone

_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")
_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class SameSite(enum.IntEnum):
    """The SameSite attribute of a cookie."""

    UNSET = 0
    DEFAULT = 1
    LAX = 2
    STRICT = 3
    NONE = 4


def _valid_name(name: str) -> bool:
    return bool(name) and all(c in _TOKEN_CHARS for c in name)


def _sanitize_value(value: str, quoted: bool) -> str:
    cleaned = "".join(c for c in value if "\x20" <= c < "\x7f" and c not in '";\\')
    if not cleaned:
        return cleaned
    if quoted or " " in cleaned or "," in cleaned:
        return f'"{cleaned}"'
    return cleaned


def _sanitize_path(path: str) -> str:
    return "".join(c for c in path if "\x20" <= c < "\x7f" and c != ";")


def _is_domain_name(name: str) -> bool:
    if not name or len(name) > 255:
        return False
    if name.startswith("."):
        name = name[1:]
    last = "."
    has_letter = False
    part_len = 0
    for c in name:
        if c.isascii() and (c.isalpha() or c == "_"):
            has_letter = True
            part_len += 1
        elif c.isascii() and c.isdigit():
            part_len += 1
        elif c == "-":
            if last == ".":
                return False
            part_len += 1
        elif c == ".":
            if last in ".-" or part_len > 63 or part_len == 0:
                return False
            part_len = 0
        else:
            return False
        last = c
    if last == "-" or part_len > 63:
        return False
    return has_letter


def _valid_domain(domain: str) -> bool:
    if _is_domain_name(domain):
        return True
    if ":" in domain:
        return False
    try:
        ipaddress.IPv4Address(domain)
    except ValueError:
        return False
    return True


def _format_expires(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return (
        f"{_DAYS[moment.weekday()]}, {moment.day:02d} {_MONTHS[moment.month - 1]} "
        f"{moment.year:04d} {moment.hour:02d}:{moment.minute:02d}:{moment.second:02d} GMT"
    )


@dataclass
class Cookie:
    """An HTTP cookie as sent in a Set-Cookie or Cookie header."""

    name: str
    value: str = ""
    quoted: bool = False
    path: str = ""
    domain: str = ""
    expires: datetime | None = None
    raw_expires: str = ""
    max_age: int = 0
    secure: bool = False
    http_only: bool = False
    same_site: SameSite = SameSite.UNSET
    partitioned: bool = False
    raw: str = ""
    unparsed: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        """Serialize the cookie as a Set-Cookie header value."""
        if not _valid_name(self.name):
            return ""
        parts = [f"{self.name}={_sanitize_value(self.value, self.quoted)}"]
        if self.path:
            parts.append(f"Path={_sanitize_path(self.path)}")
        if self.domain and _valid_domain(self.domain):
            parts.append(f"Domain={self.domain.removeprefix('.')}")
        if self.expires is not None and self.expires.year >= 1601:
            parts.append(f"Expires={_format_expires(self.expires)}")
        if self.max_age > 0:
            parts.append(f"Max-Age={self.max_age}")
        elif self.max_age < 0:
            parts.append("Max-Age=0")
        if self.http_only:
            parts.append("HttpOnly")
        if self.secure:
            parts.append("Secure")
        if self.same_site is SameSite.NONE:
            parts.append("SameSite=None")
        elif self.same_site is SameSite.LAX:
            parts.append("SameSite=Lax")
        elif self.same_site is SameSite.STRICT:
            parts.append("SameSite=Strict")
        if self.partitioned:
            parts.append("Partitioned")
        return "; ".join(parts)


class Cookies(list):
    """A list of cookies with pattern search."""

    def contains(self, pattern: object) -> bool:
        """Whether any cookie's serialized, lower-cased form matches the pattern.

        A string matches as a case-insensitive substring; a compiled regular
        expression is searched for. Any other pattern never matches.
        """
        if isinstance(pattern, str):
            needle = pattern.lower()
            return any(needle in str(cookie).lower() for cookie in self)
        if isinstance(pattern, re.Pattern) and isinstance(pattern.pattern, str):
            return any(pattern.search(str(cookie).lower()) for cookie in self)
        return False
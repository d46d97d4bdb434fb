"""Response bodies with parsing, caching and size limits."""

from __future__ import annotations

import codecs
import hashlib
import io
import json
import os
import re
import shutil
from contextlib import suppress
from email.message import Message
from typing import IO, Any
from xml.etree import ElementTree

_CHUNK = 64 * 1024
_META_CHARSET = re.compile(
    rb"""<meta[^>]+charset\s*=\s*["']?\s*([A-Za-z0-9_.:-]+)""", re.IGNORECASE
)
_BOMS = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)
# Labels that web content treats as windows-1252.
_WINDOWS_1252_LABELS = frozenset({"iso-8859-1", "iso8859-1", "latin1", "latin-1", "ascii", "us-ascii"})


def _lookup(label: str) -> str | None:
    label = label.strip().lower()
    if label in _WINDOWS_1252_LABELS:
        return "cp1252"
    try:
        return codecs.lookup(label).name
    except LookupError:
        return None


def _detect_encoding(data: bytes, content_type: str) -> str:
    for bom, name in _BOMS:
        if data.startswith(bom):
            return name
    if content_type:
        message = Message()
        message["content-type"] = content_type
        label = message.get_param("charset")
        if isinstance(label, str):
            found = _lookup(label)
            if found:
                return found
    meta = _META_CHARSET.search(data[:1024])
    if meta:
        found = _lookup(meta.group(1).decode("ascii", "ignore"))
        if found:
            return "utf-8" if found.startswith("utf-16") else found
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return "cp1252"
    return "utf-8"


def _read_up_to(reader: IO[bytes], limit: int | None) -> bytes:
    chunks = []
    remaining = limit
    while remaining is None or remaining > 0:
        chunk = reader.read(_CHUNK if remaining is None else min(_CHUNK, remaining))
        if not chunk:
            break
        chunks.append(chunk)
        if remaining is not None:
            remaining -= len(chunk)
    return b"".join(chunks)


class Body:
    """An HTTP response body.

    The body is read once; with ``cache`` enabled the content is kept in
    memory so it can be read again. ``limit`` caps the number of bytes read,
    -1 meaning no limit.
    """

    def __init__(
        self,
        reader: IO[bytes] | None,
        content_type: str = "",
        limit: int = -1,
        cache: bool = False,
    ) -> None:
        self.reader = reader
        self.content_type = content_type
        self.cache = cache
        self._limit = limit
        self._cached: bytes | None = None

    def md5(self) -> str:
        """Hex MD5 digest of the content."""
        return hashlib.md5(self.content() or b"").hexdigest()

    def xml(self) -> ElementTree.Element:
        """Parse the content as XML and return the root element."""
        return ElementTree.fromstring(self.content() or b"")

    def json(self) -> Any:
        """Parse the content as JSON."""
        return json.loads(self.content() or b"")

    def stream(self) -> io.BufferedIOBase | None:
        """A buffered reader over the raw body, or None if there is none."""
        if self.reader is None:
            return None
        if isinstance(self.reader, io.BufferedIOBase):
            return self.reader
        return io.BufferedReader(self.reader)  # type: ignore[arg-type]

    def text(self) -> str:
        """The content decoded as UTF-8."""
        data = self.content()
        return "" if data is None else data.decode("utf-8", errors="replace")

    def limit(self, limit: int) -> Body:
        """Set the maximum number of bytes to read and return the body."""
        self._limit = limit
        return self

    def close(self) -> None:
        """Drain whatever is left of the body and close it."""
        if self.reader is None:
            raise ValueError("cannot close: body is empty or contains no content")
        while self.reader.read(_CHUNK):
            pass
        self.reader.close()

    def utf8(self) -> str:
        """The content decoded using the charset it declares or is detected to use."""
        data = self.content()
        if data is None:
            return ""
        encoding = _detect_encoding(data, self.content_type)
        try:
            return data.decode(encoding, errors="replace")
        except LookupError:
            return data.decode("utf-8", errors="replace")

    def content(self) -> bytes | None:
        """The content as bytes, or None if the body cannot be read."""
        if self.cache and self._cached is not None:
            return self._cached
        reader = self.reader
        if reader is None or getattr(reader, "closed", False):
            return None
        data: bytes | None
        try:
            data = _read_up_to(reader, None if self._limit == -1 else self._limit)
        except (OSError, ValueError):
            data = None
        finally:
            with suppress(OSError, ValueError):
                self.close()
        if data is not None and self.cache:
            self._cached = data
        return data

    def dump(self, filename: str | os.PathLike[str]) -> None:
        """Write the raw body to a file."""
        if self.reader is None:
            raise ValueError("cannot dump: body is empty or contains no content")
        try:
            with open(filename, "wb") as out:
                shutil.copyfileobj(self.reader, out)
        finally:
            with suppress(OSError, ValueError):
                self.close()

    def contains(self, pattern: object) -> bool:
        """Whether the content matches the pattern.

        Bytes and strings match as case-insensitive substrings; a compiled
        regular expression is searched for. Any other pattern never matches.
        """
        if isinstance(pattern, (bytes, bytearray)):
            return bytes(pattern).lower() in (self.content() or b"").lower()
        if isinstance(pattern, str):
            return pattern.lower() in self.text().lower()
        if isinstance(pattern, re.Pattern):
            if isinstance(pattern.pattern, bytes):
                return pattern.search(self.content() or b"") is not None
            return pattern.search(self.text()) is not None
        return False
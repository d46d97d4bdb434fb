"""The HTTP client: request construction, bodies, cookies and middleware."""

from __future__ import annotations

import dataclasses
import io
import json
import os
import re
import secrets
import ssl
import string
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING, Any, Protocol, Union
from urllib.parse import SplitResult, urlencode, urlsplit
from xml.etree import ElementTree

from .cookies import Cookie
from .defaults import (
    CLIENT_TIMEOUT,
    DIALER_TIMEOUT,
    MAX_REDIRECTS,
    TCP_KEEP_ALIVE,
    USER_AGENT,
)
from .errors import SurfError

if TYPE_CHECKING:
    from .builder import Builder

_CHUNK = 64 * 1024
_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")
_WHITESPACE = b"\t\n\x0c\r "
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)
_HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)
_PREFIX_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", "text/plain; charset=utf-8"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\x0d\x0a\x1a\x0a", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"ID3", "audio/mpeg"),
    (b"OggS\x00", "application/ogg"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    (b"OTTO", "font/otf"),
    (b"\x00\x01\x00\x00", "font/ttf"),
    (b"ttcf", "font/collection"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00\x61\x73\x6d", "application/wasm"),
)
_RIFF_SIGNATURES = (
    (b"RIFF", b"WEBPVP", "image/webp"),
    (b"RIFF", b"AVI ", "video/avi"),
    (b"RIFF", b"WAVE", "audio/wave"),
    (b"FORM", b"AIFF", "audio/aiff"),
)
_BOUNDARY_PUNCTUATION = frozenset("'()+_,-./:=?")
_BOUNDARY_QUOTE_CHARS = frozenset('()<>@,;:\\"/[]?= ')
_JSON_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}
_HTTP_VERSION = re.compile(r"HTTP/(\d+)\.(\d+)")

Body = Union[bytes, Iterable[bytes], None]
RequestMiddleware = Callable[["Request"], Any]
ResponseMiddleware = Callable[[Any], Any]


class _CookieJar(Protocol):
    def cookies(self, url: SplitResult) -> list[Cookie]: ...

    def set_cookies(self, url: SplitResult, cookies: list[Cookie]) -> None: ...


@dataclass
class Dialer:
    """Settings used to open network connections."""

    timeout: float = DIALER_TIMEOUT
    keep_alive: float = TCP_KEEP_ALIVE
    local_address: str | None = None
    resolver: Any = None


@dataclass
class Request:
    """An HTTP request prepared by a client."""

    method: str
    url: str
    headers: dict[str, list[str]] = field(default_factory=dict)
    body: Body = None
    client: Client | None = None
    proto: str = "HTTP/1.1"


def _canonical_key(key: str) -> str:
    if not key or any(c not in _TOKEN_CHARS for c in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def _set_default_user_agent(request: Request) -> None:
    request.headers.setdefault("User-Agent", [USER_AGENT])


class _MultipartWriter:
    """Produces the pieces of a multipart/form-data body."""

    def __init__(self, boundary: str | None = None) -> None:
        if boundary is None:
            boundary = secrets.token_hex(30)
        _check_boundary(boundary)
        self.boundary = boundary
        self._started = False

    @property
    def content_type(self) -> str:
        boundary = self.boundary
        if any(c in _BOUNDARY_QUOTE_CHARS for c in boundary):
            boundary = f'"{boundary}"'
        return f"multipart/form-data; boundary={boundary}"

    def part(self, headers: Mapping[str, str]) -> bytes:
        prefix = f"\r\n--{self.boundary}\r\n" if self._started else f"--{self.boundary}\r\n"
        self._started = True
        lines = "".join(f"{key}: {headers[key]}\r\n" for key in sorted(headers))
        return (prefix + lines + "\r\n").encode()

    def form_field(self, name: str) -> bytes:
        return self.part({"Content-Disposition": f'form-data; name="{_escape_quotes(name)}"'})

    def form_file(self, name: str, filename: str) -> bytes:
        return self.part(
            {
                "Content-Disposition": (
                    f'form-data; name="{_escape_quotes(name)}"; '
                    f'filename="{_escape_quotes(filename)}"'
                ),
                "Content-Type": "application/octet-stream",
            }
        )

    def close(self) -> bytes:
        return f"\r\n--{self.boundary}--\r\n".encode()


def _escape_quotes(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _check_boundary(boundary: str) -> None:
    if not 1 <= len(boundary) <= 70:
        raise ValueError("mime: invalid boundary length")
    last = len(boundary) - 1
    for position, char in enumerate(boundary):
        if char.isascii() and char.isalnum():
            continue
        if char in _BOUNDARY_PUNCTUATION:
            continue
        if char == " " and position != last:
            continue
        raise ValueError("mime: invalid boundary character")


class Client:
    """A configurable HTTP client that prepares requests and runs middleware."""

    def __init__(self) -> None:
        self.dialer = Dialer()
        self.tls_config: ssl.SSLContext = ssl.create_default_context()
        self.timeout: float = CLIENT_TIMEOUT
        self.jar: _CookieJar | None = None
        self.check_redirect: Callable[[Request, list[Request]], Any] | None = None
        self.max_redirects: int = MAX_REDIRECTS
        self.transport: Any = None
        self.boundary: Callable[[], str] | None = None
        self.request_middlewares: dict[RequestMiddleware, int] = {_set_default_user_agent: 0}
        self.response_middlewares: dict[ResponseMiddleware, int] = {}
        self._builder: Builder | None = None

    def apply_request_middleware(self, request: Request) -> None:
        """Run request middleware in priority order; the first error propagates."""
        self.request_middlewares = dict(
            sorted(self.request_middlewares.items(), key=lambda item: item[1])
        )
        for middleware in list(self.request_middlewares):
            middleware(request)

    def apply_response_middleware(self, response: Any) -> None:
        """Run response middleware in priority order; the first error propagates."""
        self.response_middlewares = dict(
            sorted(self.response_middlewares.items(), key=lambda item: item[1])
        )
        for middleware in list(self.response_middlewares):
            middleware(response)

    def builder(self) -> Builder:
        """Start configuring this client with a new builder."""
        from .builder import Builder

        self._builder = Builder(self)
        return self._builder

    def raw(self, raw: str, scheme: str) -> Request:
        """Build a request from raw HTTP request text sent over the given scheme."""
        text = raw.strip() + "\n\n"
        head, _, rest = text.partition("\n\n") if "\r\n\r\n" not in text else text.partition("\r\n\r\n")
        lines = head.splitlines()
        if not lines:
            raise ValueError("malformed HTTP request")
        parts = lines[0].split(" ")
        if len(parts) != 3:
            raise ValueError(f"malformed HTTP request {lines[0]!r}")
        method, target, proto = parts
        if not method or any(c not in _TOKEN_CHARS for c in method):
            raise ValueError(f"invalid method {method!r}")
        if not _HTTP_VERSION.fullmatch(proto):
            raise ValueError(f"malformed HTTP version {proto!r}")

        headers: dict[str, list[str]] = {}
        for line in lines[1:]:
            key, sep, value = line.partition(":")
            if not sep or not key or key != key.strip():
                raise ValueError(f"malformed MIME header line: {line}")
            headers.setdefault(_canonical_key(key), []).append(value.strip())

        parsed = urlsplit(target)
        host = parsed.netloc or (headers.get("Host") or [""])[0]
        headers.pop("Host", None)
        path = parsed.path + (f"?{parsed.query}" if parsed.query else "")

        body: bytes | None = None
        if "Content-Length" in headers:
            length_text = headers["Content-Length"][0]
            if not length_text.isdigit():
                raise ValueError(f"bad Content-Length {length_text!r}")
            body = rest.encode()[: int(length_text)]

        return Request(
            method=method,
            url=f"{scheme}://{host}{path}",
            headers=headers,
            body=body,
            client=self,
            proto=proto,
        )

    def get(self, raw_url: str, data: Any = None) -> Request:
        """Prepare a GET request, with an optional body."""
        return self._build_request(raw_url, "GET", data)

    def delete(self, raw_url: str, data: Any = None) -> Request:
        """Prepare a DELETE request, with an optional body."""
        return self._build_request(raw_url, "DELETE", data)

    def head(self, raw_url: str) -> Request:
        """Prepare a HEAD request."""
        return self._build_request(raw_url, "HEAD", None)

    def post(self, raw_url: str, data: Any) -> Request:
        """Prepare a POST request with a body built from data."""
        return self._build_request(raw_url, "POST", data)

    def put(self, raw_url: str, data: Any) -> Request:
        """Prepare a PUT request with a body built from data."""
        return self._build_request(raw_url, "PUT", data)

    def patch(self, raw_url: str, data: Any) -> Request:
        """Prepare a PATCH request with a body built from data."""
        return self._build_request(raw_url, "PATCH", data)

    def file_upload(
        self, raw_url: str, field_name: str, file_path: str | os.PathLike[str], *args: Any
    ) -> Request:
        """Prepare a multipart POST uploading a file.

        Up to two extra arguments are honoured: a mapping of additional form
        fields, and a string or readable object used as the file's content in
        place of the file on disk. The body is produced lazily.
        """
        url = sanitize_url(raw_url)
        parse_url(url)

        fields: Mapping[Any, Any] = {}
        reader: IO[Any] | None = None
        for arg in args[:2]:
            if isinstance(arg, Mapping):
                fields = arg
            elif isinstance(arg, str):
                reader = io.BytesIO(arg.encode())
            elif hasattr(arg, "read"):
                reader = arg

        opened: IO[bytes] | None = None
        if reader is None:
            opened = open(file_path, "rb")
            reader = opened

        try:
            writer = _MultipartWriter(self.boundary() if self.boundary else None)
        except ValueError:
            if opened is not None:
                opened.close()
            raise

        filename = os.path.basename(os.fspath(file_path))
        source = reader

        def parts() -> Iterator[bytes]:
            try:
                yield writer.form_file(str(field_name), filename)
                while chunk := source.read(_CHUNK):
                    yield chunk.encode() if isinstance(chunk, str) else bytes(chunk)
                for name, value in fields.items():
                    yield writer.form_field(str(name))
                    yield str(value).encode()
                yield writer.close()
            finally:
                if opened is not None:
                    opened.close()

        return Request(
            method="POST",
            url=url,
            headers={"Content-Type": [writer.content_type]},
            body=parts(),
            client=self,
        )

    def multipart(self, raw_url: str, multipart_data: Mapping[str, str]) -> Request:
        """Prepare a multipart/form-data POST with the given fields, in order."""
        url = sanitize_url(raw_url)
        writer = _MultipartWriter(self.boundary() if self.boundary else None)
        pieces = []
        for name, value in multipart_data.items():
            pieces.append(writer.form_field(str(name)))
            pieces.append(str(value).encode())
        pieces.append(writer.close())
        parse_url(url)
        return Request(
            method="POST",
            url=url,
            headers={"Content-Type": [writer.content_type]},
            body=b"".join(pieces),
            client=self,
        )

    def get_cookies(self, raw_url: str) -> list[Cookie] | None:
        """Cookies the jar holds for the URL, or None without a jar or a valid URL."""
        if self.jar is None:
            return None
        try:
            parsed = parse_url(raw_url)
        except ValueError:
            return None
        return self.jar.cookies(parsed)

    def set_cookies(self, raw_url: str, cookies: list[Cookie]) -> None:
        """Store cookies for the URL in the jar."""
        if self.jar is None:
            raise SurfError("cookie jar is not available")
        self.jar.set_cookies(parse_url(raw_url), cookies)

    def _build_request(self, raw_url: str, method: str, data: Any) -> Request:
        url = sanitize_url(raw_url)
        body, content_type = build_body(data)
        parse_url(url)
        headers: dict[str, list[str]] = {}
        if content_type:
            headers["Content-Type"] = [content_type]
        return Request(method=method, url=url, headers=headers, body=body, client=self)


def build_body(data: Any) -> tuple[bytes | None, str]:
    """Encode request data and return the body with its content type.

    Bytes are sniffed, strings are checked for JSON, XML and form encoding,
    string mappings become form data, dataclass instances JSON and
    ElementTree elements XML. Anything else raises TypeError.
    """
    if data is None:
        return None, ""
    if isinstance(data, (bytes, bytearray, memoryview)):
        raw = bytes(data)
        return raw, _sniff(raw)
    if isinstance(data, str):
        raw = data.encode()
        content_type = detect_content_type(raw)
        if content_type == "text/plain; charset=utf-8" and ("=" in data or "&" in data):
            content_type = "application/x-www-form-urlencoded"
        return raw, content_type
    if isinstance(data, Mapping) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        encoded = urlencode(sorted(data.items()))
        return encoded.encode(), "application/x-www-form-urlencoded"
    return _build_annotated_body(data)


def _build_annotated_body(data: Any) -> tuple[bytes, str]:
    if dataclasses.is_dataclass(data) and not isinstance(data, type) and dataclasses.fields(data):
        text = json.dumps(dataclasses.asdict(data), separators=(",", ":"), ensure_ascii=False)
        for char, escape in _JSON_ESCAPES.items():
            text = text.replace(char, escape)
        return (text + "\n").encode(), "application/json; charset=utf-8"
    if isinstance(data, ElementTree.Element):
        return ElementTree.tostring(data), "application/xml; charset=utf-8"
    raise TypeError("data type not detected")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON value {name}")


def _is_json(data: bytes) -> bool:
    try:
        json.loads(data.decode("utf-8"), parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError):
        return False
    return True


def _is_xml(data: bytes) -> bool:
    parser = ElementTree.XMLPullParser(events=("start", "end"))
    depth = 0

    def root_closed() -> bool:
        nonlocal depth
        for event, _ in parser.read_events():
            depth += 1 if event == "start" else -1
            if depth == 0:
                return True
        return False

    try:
        parser.feed(data)
        if root_closed():
            return True
        parser.close()
        return root_closed()
    except ElementTree.ParseError:
        return False


def detect_content_type(data: bytes | str) -> str:
    """Content type of data: JSON, XML, or whatever sniffing finds."""
    raw = data.encode() if isinstance(data, str) else bytes(data)
    if _is_json(raw):
        return "application/json; charset=utf-8"
    if _is_xml(raw):
        return "application/xml; charset=utf-8"
    return _sniff(raw)


def _html_match(data: bytes, tag: bytes) -> bool:
    if len(data) < len(tag) + 1:
        return False
    for expected, actual in zip(tag, data):
        if ord("A") <= expected <= ord("Z"):
            actual &= 0xDF
        if expected != actual:
            return False
    return data[len(tag)] in b" >"


def _sniff(data: bytes) -> str:
    data = data[:512]
    stripped = data.lstrip(_WHITESPACE)
    if any(_html_match(stripped, tag) for tag in _HTML_TAGS):
        return "text/html; charset=utf-8"
    if stripped.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    for prefix, content_type in _PREFIX_SIGNATURES:
        if data.startswith(prefix):
            return content_type
    for head, kind, content_type in _RIFF_SIGNATURES:
        if data.startswith(head) and data[8 : 8 + len(kind)] == kind:
            return content_type
    if any(byte in _BINARY_BYTES for byte in data):
        return "application/octet-stream"
    return "text/plain; charset=utf-8"


def sanitize_url(raw_url: str) -> str:
    """Strip surrounding dots and add an http:// scheme when none is given."""
    url = raw_url.strip(".")
    if not url.startswith(("http://", "https://")):
        url = "http://" + url
    return url


def parse_url(raw_url: str) -> SplitResult:
    """Parse a URL, raising ValueError when it is empty or malformed."""
    if not raw_url:
        raise ValueError("URL is empty")
    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in raw_url):
        raise ValueError(f"failed to parse URL '{raw_url}': invalid control character in URL")
    try:
        parsed = urlsplit(raw_url)
        parsed.port  # noqa: B018 - validates the port
    except ValueError as exc:
        raise ValueError(f"failed to parse URL '{raw_url}': {exc}") from exc
    return parsed
"""Fluent configuration of a client: middleware, redirects, retries and sessions."""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import SplitResult, urlsplit

from .client import Client, Request
from .cookies import Cookie
from .defaults import MAX_REDIRECTS
from .errors import SurfError

if TYPE_CHECKING:
    from .dnsovertls import DNSOverTLS

RedirectPolicy = Callable[[Request, "list[Request]"], Any]

_DEFAULT_RETRY_CODES = (500, 429, 503)


class MiddlewareKind(enum.Enum):
    """What a middleware acts upon."""

    CLIENT = "client"
    REQUEST = "request"
    RESPONSE = "response"


_KIND_BY_ANNOTATION = {
    "Client": MiddlewareKind.CLIENT,
    "Request": MiddlewareKind.REQUEST,
    "Response": MiddlewareKind.RESPONSE,
}


def _infer_kind(middleware: Callable[..., Any]) -> MiddlewareKind | None:
    annotations = getattr(middleware, "__annotations__", None)
    if not isinstance(annotations, dict):
        return None
    parameters = [value for key, value in annotations.items() if key != "return"]
    if len(parameters) != 1:
        return None
    annotation = parameters[0]
    if isinstance(annotation, type):
        name = annotation.__name__
    elif isinstance(annotation, str):
        name = annotation.strip("'\"").rsplit(".", 1)[-1]
    else:
        return None
    return _KIND_BY_ANNOTATION.get(name)


@dataclass
class _StoredCookie:
    cookie: Cookie
    host_only: bool
    expires: datetime | None


def _default_path(path: str) -> str:
    if not path or not path.startswith("/"):
        return "/"
    index = path.rfind("/")
    if index == 0:
        return "/"
    return path[:index]


def _path_match(request_path: str, cookie_path: str) -> bool:
    if request_path == cookie_path:
        return True
    if request_path.startswith(cookie_path):
        return cookie_path.endswith("/") or request_path[len(cookie_path)] == "/"
    return False


def _domain_match(host: str, domain: str, host_only: bool) -> bool:
    if host_only:
        return host == domain
    return host == domain or host.endswith("." + domain)


class _MemoryJar:
    """An in-memory cookie jar keyed by domain, path and name."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str, str], _StoredCookie] = {}

    def set_cookies(self, url: SplitResult, cookies: list[Cookie] | None) -> None:
        host = (url.hostname or "").lower()
        now = datetime.now(timezone.utc)
        for cookie in cookies or []:
            if not cookie.name:
                continue
            domain = cookie.domain.lstrip(".").lower()
            if domain:
                if not _domain_match(host, domain, host_only=False):
                    continue
                host_only = False
            else:
                domain, host_only = host, True
            path = cookie.path if cookie.path.startswith("/") else _default_path(url.path)
            key = (domain, path, cookie.name)

            expires: datetime | None = None
            if cookie.max_age < 0:
                self._entries.pop(key, None)
                continue
            if cookie.max_age > 0:
                expires = now + timedelta(seconds=cookie.max_age)
            elif cookie.expires is not None:
                expires = cookie.expires
                if expires.tzinfo is None:
                    expires = expires.replace(tzinfo=timezone.utc)
                if expires <= now:
                    self._entries.pop(key, None)
                    continue
            self._entries[key] = _StoredCookie(
                replace(cookie, domain=domain, path=path), host_only, expires
            )

    def cookies(self, url: SplitResult) -> list[Cookie]:
        host = (url.hostname or "").lower()
        path = url.path or "/"
        secure = url.scheme == "https"
        now = datetime.now(timezone.utc)
        for key in [k for k, v in self._entries.items() if v.expires and v.expires <= now]:
            del self._entries[key]
        matches = [
            entry.cookie
            for (domain, cookie_path, _), entry in self._entries.items()
            if _domain_match(host, domain, entry.host_only)
            and _path_match(path, cookie_path)
            and (secure or not entry.cookie.secure)
        ]
        matches.sort(key=lambda cookie: len(cookie.path), reverse=True)
        return [Cookie(name=cookie.name, value=cookie.value, quoted=cookie.quoted) for cookie in matches]


def _session_middleware(client: Client) -> None:
    if client.jar is None:
        client.jar = _MemoryJar()


def _redirect_policy_middleware(client: Client) -> None:
    builder = client._builder
    limit = MAX_REDIRECTS
    if builder is not None:
        if builder.check_redirect is not None:
            client.check_redirect = builder.check_redirect
            return
        if builder.redirect_limit:
            limit = builder.redirect_limit
    client.max_redirects = limit

    def check(request: Request, via: list[Request]) -> bool:
        if len(via) >= limit:
            raise SurfError(f"stopped after {limit} redirects")
        if builder is not None and via:
            first = via[0]
            if builder.host_redirects_only:
                if urlsplit(request.url).hostname != urlsplit(first.url).hostname:
                    return False
            if builder.forward_headers:
                for key, values in first.headers.items():
                    request.headers[key] = list(values)
        return True

    client.check_redirect = check


class Builder:
    """Configures a client step by step; build() applies the configuration.

    Redirect policies take the new request and the requests made so far.
    They return a false value to stop and keep the last response, and raise
    to abort the request.
    """

    def __init__(self, client: Client) -> None:
        self.client = client
        self.check_redirect: RedirectPolicy | None = None
        self.retry_codes: list[int] = []
        self.retry_wait: float = 0.0
        self.retry_max: int = 0
        self.redirect_limit: int = 0
        self.body_caching = False
        self.host_redirects_only = False
        self.forward_headers = False
        self.session_enabled = False
        self.singleton_enabled = False
        self._client_middlewares: dict[Callable[[Client], Any], int] = {}

    def build(self) -> Client:
        """Apply client middleware in priority order and return the client."""
        ordered = sorted(self._client_middlewares.items(), key=lambda item: item[1])
        self._client_middlewares = dict(ordered)
        for middleware in list(self._client_middlewares):
            middleware(self.client)
        return self.client

    def with_middleware(
        self,
        middleware: Callable[..., Any],
        priority: int = 0,
        kind: MiddlewareKind | None = None,
    ) -> Builder:
        """Add a client, request or response middleware.

        Without an explicit kind it is taken from the annotation of the
        middleware's single parameter; TypeError is raised if it cannot be.
        """
        if not callable(middleware):
            raise TypeError(f"invalid middleware type: {type(middleware).__name__}")
        if kind is None:
            kind = _infer_kind(middleware)
        if kind is MiddlewareKind.CLIENT:
            return self._add_client_middleware(middleware, priority)
        if kind is MiddlewareKind.REQUEST:
            return self._add_request_middleware(middleware, priority)
        if kind is MiddlewareKind.RESPONSE:
            self.client.response_middlewares[middleware] = priority
            return self
        raise TypeError(f"invalid middleware type: {type(middleware).__name__}")

    def _add_client_middleware(self, middleware: Callable[[Client], Any], priority: int) -> Builder:
        self._client_middlewares[middleware] = priority
        return self

    def _add_request_middleware(self, middleware: Callable[[Request], Any], priority: int) -> Builder:
        self.client.request_middlewares[middleware] = priority
        return self

    def boundary(self, boundary: Callable[[], str]) -> Builder:
        """Use a custom generator for multipart boundaries."""

        def apply(client: Client) -> None:
            client.boundary = boundary

        return self._add_client_middleware(apply, 999)

    def singleton(self) -> Builder:
        """Reuse one client instance and its connections."""
        self.singleton_enabled = True
        return self

    def timeout(self, timeout: float | timedelta) -> Builder:
        """Set the overall request timeout, in seconds."""
        seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)

        def apply(client: Client) -> None:
            client.timeout = seconds

        return self._add_client_middleware(apply, 0)

    def retry(self, retry_max: int, retry_wait: float, *args: int) -> Builder:
        """Retry up to retry_max times, waiting retry_wait seconds between attempts.

        Status codes that trigger a retry may be given; by default they are
        500, 429 and 503.
        """
        self.retry_max = retry_max
        self.retry_wait = retry_wait
        self.retry_codes = list(args) if args else list(_DEFAULT_RETRY_CODES)
        return self

    def cache_body(self) -> Builder:
        """Keep response bodies in memory so they can be read again."""
        self.body_caching = True
        return self

    def session(self) -> Builder:
        """Keep cookies between requests."""
        self.session_enabled = True
        return self._add_client_middleware(_session_middleware, 0)

    def max_redirects(self, max_redirects: int) -> Builder:
        """Set the maximum number of redirects to follow."""
        self.redirect_limit = max_redirects
        return self._add_client_middleware(_redirect_policy_middleware, 0)

    def not_follow_redirects(self) -> Builder:
        """Stop at the first redirect and return its response."""
        return self.redirect_policy(lambda request, via: False)

    def follow_only_host_redirects(self) -> Builder:
        """Follow redirects only when they stay on the original host."""
        self.host_redirects_only = True
        return self._add_client_middleware(_redirect_policy_middleware, 0)

    def forward_headers_on_redirect(self) -> Builder:
        """Send the original request's headers on every redirect."""
        self.forward_headers = True
        return self._add_client_middleware(_redirect_policy_middleware, 0)

    def redirect_policy(self, fn: RedirectPolicy) -> Builder:
        """Use a custom redirect policy."""
        self.check_redirect = fn
        return self._add_client_middleware(_redirect_policy_middleware, 0)

    def dns_over_tls(self) -> DNSOverTLS:
        """Choose a DNS-over-TLS provider for name resolution."""
        from .dnsovertls import DNSOverTLS

        return DNSOverTLS(self)

    def __str__(self) -> str:
        fields = {
            "singleton": self.singleton_enabled,
            "session": self.session_enabled,
            "cache_body": self.body_caching,
            "max_redirects": self.redirect_limit,
            "follow_only_host_redirects": self.host_redirects_only,
            "forward_headers_on_redirect": self.forward_headers,
            "retry_max": self.retry_max,
            "retry_wait": self.retry_wait,
            "retry_codes": self.retry_codes,
            "check_redirect": self.check_redirect,
            "client_middlewares": len(self._client_middlewares),
        }
        return "Builder(" + ", ".join(f"{k}={v!r}" for k, v in fields.items()) + ")"
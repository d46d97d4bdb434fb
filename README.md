# surfclient

A library for preparing HTTP requests with the standard library alone. It
offers a fluent builder for client settings, ordered request and response
middleware, an in-memory cookie jar, encoding of request bodies (forms, JSON,
XML, multipart and file uploads), helpers for reading response bodies, and
TLS connections to DNS-over-TLS servers.

## Installation

```
pip install surfclient
```

To run the test suite:

```
pip install "surfclient[test]"
pytest
```

## What it does not do

surfclient prepares requests; it does not send them. There is no network
transport: `Request` objects are plain data (method, URL, headers, body),
and nothing here opens an HTTP connection, follows redirects, performs
retries or decompresses responses. The builder records retry, redirect,
timeout and singleton settings on the builder and the client, for a
transport of your own to act on. Likewise the DNS-over-TLS support opens a
TLS connection to a DNS server but sends no DNS queries.

## Creating a client

```python
from surfclient.client import Client

client = Client()
```

A new client has a `Dialer` (30 second connect timeout, 15 second
keep-alive), a default `ssl.SSLContext` in `tls_config`, a 30 second
`timeout`, `max_redirects` of 10, no cookie jar, and one request middleware
that adds a browser-like `User-Agent` header when none is set. The default
values live in `surfclient.defaults`.

`Client.builder()` returns a `surfclient.builder.Builder`. Each builder
method returns the builder, and `build()` applies the configured client
middleware in ascending priority order and returns the client:

```python
client = (
    Client()
    .builder()
    .session()
    .timeout(10)
    .retry(3, 0.5)
    .max_redirects(5)
    .cache_body()
    .build()
)
```

| Method | Effect |
| --- | --- |
| `session()` | gives the client an in-memory cookie jar |
| `timeout(seconds)` | sets `client.timeout` (a number or a `timedelta`) |
| `retry(retry_max, retry_wait, *codes)` | records retry settings; codes default to 500, 429 and 503 |
| `cache_body()` | sets `builder.body_caching` |
| `singleton()` | sets `builder.singleton_enabled` |
| `max_redirects(n)` | installs a redirect check that raises `SurfError` after `n` redirects |
| `not_follow_redirects()` | installs a redirect policy that always returns `False` |
| `follow_only_host_redirects()` | the redirect check returns `False` when the host changes |
| `forward_headers_on_redirect()` | the redirect check copies the first request's headers onto each redirect |
| `redirect_policy(fn)` | uses `fn(request, via)` as `client.check_redirect` |
| `boundary(fn)` | uses `fn()` to generate multipart boundaries |
| `dns_over_tls()` | chooses a DNS-over-TLS provider (see below) |
| `with_middleware(middleware, priority, kind)` | adds client, request or response middleware |

A redirect check is called with the new request and the list of requests
made so far; it returns a false value to stop and keep the last response,
and raises to abort.

## Middleware

`MiddlewareKind` (`CLIENT`, `REQUEST`, `RESPONSE`) says what a middleware is
applied to. When `kind` is omitted it is taken from the type annotation of
the middleware's single parameter (`Client`, `Request` or `Response`);
`TypeError` is raised if it cannot be determined.

```python
from surfclient.builder import MiddlewareKind
from surfclient.client import Client


def add_token(request):
    request.headers["Authorization"] = ["Bearer token"]


client = Client().builder().with_middleware(add_token, 10, MiddlewareKind.REQUEST).build()
request = client.get("example.com")
client.apply_request_middleware(request)
```

`apply_request_middleware` and `apply_response_middleware` run the
registered middleware in ascending priority order; an exception raised by a
middleware stops the run and propagates.

## Preparing requests

```python
request = client.get("example.com/search?q=surf")
request = client.post("https://example.com/api", {"name": "value"})
request = client.put("https://example.com/api/item", '{"id": 1}')
request = client.patch("https://example.com/api/item", "field=value")
request = client.delete("https://example.com/api/item", None)
request = client.head("https://example.com/")
```

`sanitize_url` strips leading and trailing dots and adds `http://` when the
URL has neither `http://` nor `https://`; `parse_url` raises `ValueError`
for an empty or malformed URL. `build_body` chooses the body and its
Content-Type:

* `bytes` are sent as they are, with a sniffed content type;
* a `str` that parses as JSON or XML is labelled accordingly; a plain-text
  string holding `=` or `&` is labelled as form data;
* a mapping of strings is URL-encoded as a form, keys sorted;
* a dataclass instance is encoded as JSON, an `ElementTree.Element` as XML;
* anything else raises `TypeError`.

Multipart forms and file uploads:

```python
request = client.multipart("https://example.com/form", {"field": "value"})
request = client.file_upload("https://example.com/upload", "file", "report.pdf")
```

`file_upload` takes up to two extra arguments: a mapping of additional form
fields, and a string or readable object used as the file's content instead
of reading the file. Its body is a generator of bytes, produced lazily.

`client.raw(text, "https")` builds a request from raw HTTP request text and
raises `ValueError` when the text is malformed.

## Response bodies

`surfclient.body.Body(reader, content_type="", limit=-1, cache=False)` wraps
a readable binary stream:

* `content()` reads the bytes, at most `limit` of them (`-1` for no limit),
  and closes the stream; with `cache=True` the bytes are kept for later
  calls; it returns `None` when the stream is missing or closed;
* `limit(n)` sets the limit and returns the body;
* `text()` decodes as UTF-8; `utf8()` decodes using a byte-order mark, the
  Content-Type charset or an HTML `<meta>` charset, falling back to UTF-8
  or windows-1252;
* `json()` parses JSON, `xml()` returns the root `Element`;
* `md5()` returns the hex digest of the content;
* `contains(pattern)` matches `str` and `bytes` case-insensitively and
  searches with compiled regular expressions; other patterns never match;
* `stream()` returns a buffered reader, `dump(filename)` writes the body to
  a file, `close()` drains and closes the stream (`ValueError` if there is
  none).

```python
import io
from surfclient.body import Body

Body(io.BytesIO(b'{"a": 1}'), "application/json").json()  # {'a': 1}
```

## Cookies

With `session()` enabled, cookies are stored per URL, honouring domain,
path, `Secure`, `Max-Age` and `Expires`:

```python
from surfclient.cookies import Cookie

client.set_cookies("https://example.com", [Cookie(name="session", value="token")])
stored = client.get_cookies("https://example.com")
```

`set_cookies` raises `SurfError` when the client has no jar and
`ValueError` for an empty or malformed URL. `get_cookies` returns `None` in
either case.

`str(cookie)` gives the cookie's `Set-Cookie` form. `Cookies` is a list of
cookies whose `contains(pattern)` checks the lower-cased `Set-Cookie` form
of each cookie: strings match case-insensitively, compiled regular
expressions with `search`, and any other pattern never matches.

## DNS over TLS

```python
client = Client().builder().dns_over_tls().cloudflare().build()
resolver = client.dialer.resolver  # a TLSResolver
```

Built-in providers: `adguard`, `google`, `cloudflare`, `quad9`, `switch`,
`cira_shield`, `ali`, `quad101`, `sb`, `forge` and `libre_dns`. Another is
added with `add_provider(server_name, *addresses)`, each address being
`host:port`. `TLSResolver.connect(timeout)` tries the addresses in order,
returns a TLS socket to the first that answers (reusing the TLS session
across calls) and raises the last connection error when none does.

## Errors

`surfclient.errors` defines `SurfError` and its subclasses
`WebSocketUpgradeError`, `Response101Error` and `UserAgentTypeError` (also
a `TypeError`), each built from a short message. Within the package only
`SurfError` itself is raised, by `set_cookies` and by redirect checks; the
subclasses are there for middleware and transports to use.
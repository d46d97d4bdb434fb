import pytest

from surfclient.builder import Builder, MiddlewareKind
from surfclient.client import Client, Request
from surfclient.cookies import Cookie
from surfclient.defaults import MAX_REDIRECTS
from surfclient.errors import SurfError


def test_build_returns_same_client():
    client = Client()
    builder = client.builder()
    assert isinstance(builder, Builder)
    assert builder.build() is client


def test_timeout_applied_on_build():
    client = Client().builder().timeout(10).build()
    assert client.timeout == 10.0


def test_retry_default_codes():
    builder = Client().builder().retry(5, 0.01)
    assert builder.retry_codes == [500, 429, 503]
    assert builder.retry_max == 5
    assert builder.retry_wait == 0.01


def test_retry_custom_codes():
    builder = Client().builder().retry(2, 1.0, 502, 504)
    assert builder.retry_codes == [502, 504]


def test_flags():
    builder = Client().builder().singleton().cache_body()
    assert builder.singleton_enabled is True
    assert builder.body_caching is True


def test_boundary_used_by_multipart():
    client = Client().builder().boundary(lambda: "fixedboundary").build()
    request = client.multipart("example.com", {"a": "b"})
    assert request.headers["Content-Type"] == ["multipart/form-data; boundary=fixedboundary"]


def test_request_middleware_explicit_kind():
    seen = []
    client = (
        Client()
        .builder()
        .with_middleware(lambda req: seen.append(req.method), 0, MiddlewareKind.REQUEST)
        .build()
    )
    request = client.get("example.com")
    client.apply_request_middleware(request)
    assert seen == ["GET"]


def test_middleware_kind_inferred_from_annotation():
    def mark(request: Request) -> None:
        request.headers["X-Mark"] = ["1"]

    client = Client().builder().with_middleware(mark).build()
    request = client.get("example.com")
    client.apply_request_middleware(request)
    assert request.headers["X-Mark"] == ["1"]


def test_response_middleware_registered():
    def on_response(response: "Response") -> None:  # noqa: F821
        pass

    client = Client().builder().with_middleware(on_response, 5).build()
    assert client.response_middlewares[on_response] == 5


def test_invalid_middleware_raises():
    with pytest.raises(TypeError):
        Client().builder().with_middleware(lambda x: x)
    with pytest.raises(TypeError):
        Client().builder().with_middleware(123)


def test_client_middleware_priority_order():
    def late(client: Client) -> None:
        client.timeout = 2.0

    def early(client: Client) -> None:
        client.timeout = 1.0

    client = Client().builder().with_middleware(late, 10).with_middleware(early, -1).build()
    assert client.timeout == 2.0


def test_session_cookie_round_trip():
    client = Client().builder().session().build()
    client.set_cookies("http://example.com/", [Cookie(name="k", value="v")])
    cookies = client.get_cookies("http://example.com/")
    assert [(c.name, c.value) for c in cookies] == [("k", "v")]


def test_session_cookie_default_path():
    client = Client().builder().session().build()
    client.set_cookies("http://example.com/dir/page", [Cookie(name="k", value="v")])
    assert [c.name for c in client.get_cookies("http://example.com/dir/other")] == ["k"]
    assert client.get_cookies("http://example.com/") == []


def test_session_cookie_negative_max_age_deletes():
    client = Client().builder().session().build()
    client.set_cookies("http://example.com/", [Cookie(name="k", value="v")])
    client.set_cookies("http://example.com/", [Cookie(name="k", value="", max_age=-1)])
    assert client.get_cookies("http://example.com/") == []


def test_without_session_set_cookies_raises():
    client = Client().builder().build()
    with pytest.raises(SurfError):
        client.set_cookies("http://example.com/", [Cookie(name="k", value="v")])


def test_max_redirects_limit():
    client = Client().builder().max_redirects(2).build()
    req = Request("GET", "http://example.com/c")
    via = [Request("GET", "http://example.com/a")]
    assert client.check_redirect(req, via) is True
    with pytest.raises(SurfError, match="stopped after 2 redirects"):
        client.check_redirect(req, via * 2)


def test_default_redirect_limit():
    client = Client().builder().follow_only_host_redirects().build()
    assert client.max_redirects == MAX_REDIRECTS


def test_not_follow_redirects():
    client = Client().builder().not_follow_redirects().build()
    req = Request("GET", "http://example.com/b")
    assert not client.check_redirect(req, [Request("GET", "http://example.com/a")])


def test_follow_only_host_redirects():
    client = Client().builder().follow_only_host_redirects().build()
    via = [Request("GET", "http://example.com/a")]
    assert client.check_redirect(Request("GET", "http://example.com/b"), via) is True
    assert client.check_redirect(Request("GET", "http://other.example.com/b"), via) is False


def test_forward_headers_on_redirect():
    client = Client().builder().forward_headers_on_redirect().build()
    first = Request("GET", "http://example.com/a", headers={"X-Token": ["token"]})
    req = Request("GET", "http://example.com/b")
    client.check_redirect(req, [first])
    assert req.headers["X-Token"] == ["token"]


def test_custom_redirect_policy():
    def policy(request, via):
        return "custom"

    client = Client().builder().redirect_policy(policy).build()
    assert client.check_redirect is policy


def test_str_describes_builder():
    text = str(Client().builder().session())
    assert text.startswith("Builder(")
    assert "session=True" in text
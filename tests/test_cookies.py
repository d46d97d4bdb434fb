import re
from datetime import datetime, timezone

import pytest

from surfclient.cookies import Cookie, Cookies, SameSite


@pytest.fixture
def basic_cookies():
    return Cookies(
        [
            Cookie(name="test-cookie", value="test-value"),
            Cookie(name="another-cookie", value="another-value"),
        ]
    )


def test_basic_contains(basic_cookies):
    assert basic_cookies.contains("test-cookie")
    assert basic_cookies.contains("another-cookie")
    found = [c for c in basic_cookies if c.name == "test-cookie"]
    assert found[0].value == "test-value"


def test_cookie_with_attributes_str():
    cookie = Cookie(
        name="secure-cookie",
        value="secure-value",
        path="/test",
        domain="example.com",
        secure=True,
        http_only=True,
        same_site=SameSite.STRICT,
    )
    assert str(cookie) == (
        "secure-cookie=secure-value; Path=/test; Domain=example.com; "
        "HttpOnly; Secure; SameSite=Strict"
    )
    assert Cookies([cookie]).contains("secure-cookie")


def test_iteration_counts_prefixed_cookies():
    cookies = Cookies(Cookie(name=f"cookie-{i}", value=f"value-{i}") for i in range(1, 6))
    assert sum(1 for c in cookies if c.name.startswith("cookie-")) == 5


def test_special_chars_are_sanitized():
    cookie = Cookie(name="special-cookie", value="value with spaces and 特殊字符")
    assert str(cookie) == 'special-cookie="value with spaces and "'
    assert Cookies([cookie]).contains("special-cookie")


def test_empty_collection_contains_nothing():
    empty = Cookies()
    assert not empty.contains("any-pattern")
    assert not empty.contains("any")
    assert not empty.contains(re.compile(r".*"))


def test_contains_edge_cases():
    cookies = Cookies(
        [
            Cookie(name="", value="empty-name"),
            Cookie(name="empty-value", value=""),
            Cookie(name="normal", value="normal-value"),
        ]
    )
    assert str(cookies[0]) == ""
    assert str(cookies[1]) == "empty-value="
    assert cookies.contains("normal")
    assert cookies.contains("empty-value")
    assert not cookies.contains("empty-name")


def test_multiple_same_name():
    cookies = Cookies(
        [
            Cookie(name="duplicate", value="value1", path="/"),
            Cookie(name="duplicate", value="value2", path="/api"),
        ]
    )
    assert cookies.contains("duplicate")
    assert sum(1 for c in cookies if c.name == "duplicate") == 2


def test_contains_method_with_strings():
    cookies = Cookies([Cookie(name="test-cookie", value="test-value")])
    assert cookies.contains("test-cookie")
    assert not cookies.contains("non-existent")


def test_contains_regexp():
    cookies = Cookies(
        [
            Cookie(name="session-id", value="abc123def"),
            Cookie(name="user-pref", value="dark-theme"),
            Cookie(name="auth-token", value="bearer-xyz789"),
        ]
    )
    assert cookies.contains(re.compile(r"session-id=[a-z0-9]+"))
    assert cookies.contains(re.compile(r"auth-token=bearer-[a-z0-9]+"))
    assert not cookies.contains(re.compile(r"admin-session=[0-9]+"))
    assert cookies.contains(re.compile(r"(?i)USER-PREF=.*THEME"))


def test_contains_is_case_insensitive():
    cookies = Cookies([Cookie(name="TestCookie", value="TestValue")])
    assert cookies.contains("testcookie")
    assert cookies.contains("TESTCOOKIE")
    assert cookies.contains("testvalue")
    assert cookies.contains("TESTVALUE")


def test_contains_partial_matches():
    cookies = Cookies(
        [
            Cookie(
                name="complex-cookie",
                value="complex-value-with-dashes",
                path="/api/v1",
                domain="example.com",
                secure=True,
                http_only=True,
            )
        ]
    )
    assert cookies.contains("complex")
    assert cookies.contains("complex-value")
    assert cookies.contains("/api")
    assert cookies.contains("example.com")
    assert cookies.contains("secure")
    assert cookies.contains("httponly")


def test_contains_complex_regexp():
    cookies = Cookies(
        [
            Cookie(
                name="jwt-token",
                value="eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.payload.signature",
            ),
            Cookie(name="timestamp", value="1640995200"),
        ]
    )
    assert cookies.contains("jwt-token")
    assert cookies.contains(re.compile(r"eyj.*signature"))
    assert cookies.contains(re.compile(r"\d{10}"))
    assert cookies.contains(re.compile(r"(jwt-token|1640995200)"))


@pytest.mark.parametrize("pattern", [123, ["test"], {"test": "value"}, True, None, b"test"])
def test_contains_unsupported_types(pattern):
    cookies = Cookies([Cookie(name="test", value="value")])
    assert cookies.contains(pattern) is False


def test_quoted_value():
    assert str(Cookie(name="a", value="b", quoted=True)) == 'a="b"'


def test_domain_handling():
    assert str(Cookie(name="a", value="b", domain=".example.com")) == "a=b; Domain=example.com"
    assert str(Cookie(name="a", value="b", domain="127.0.0.1")) == "a=b; Domain=127.0.0.1"
    assert str(Cookie(name="a", value="b", domain="bad domain")) == "a=b"


def test_max_age():
    assert str(Cookie(name="a", value="b", max_age=60)) == "a=b; Max-Age=60"
    assert str(Cookie(name="a", value="b", max_age=-1)) == "a=b; Max-Age=0"


def test_expires():
    moment = datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    cookie = Cookie(name="a", value="b", expires=moment)
    assert str(cookie) == "a=b; Expires=Wed, 02 Jan 2030 03:04:05 GMT"
    old = Cookie(name="a", value="b", expires=datetime(1500, 1, 1, tzinfo=timezone.utc))
    assert str(old) == "a=b"


def test_same_site_and_partitioned():
    cookie = Cookie(name="a", value="b", same_site=SameSite.LAX, partitioned=True)
    assert str(cookie) == "a=b; SameSite=Lax; Partitioned"
    assert str(Cookie(name="a", value="b", same_site=SameSite.NONE)) == "a=b; SameSite=None"
    assert str(Cookie(name="a", value="b", same_site=SameSite.DEFAULT)) == "a=b"
import re

from gateway.ratelimit.identity import resolve_client_identity


def test_connecting_ip_header_wins() -> None:
    headers = {
        "cf-connecting-ip": "198.51.100.1",
        "x-forwarded-for": "203.0.113.5",
        "x-real-ip": "192.0.2.1",
    }
    assert resolve_client_identity(headers) == "198.51.100.1"


def test_first_forwarded_for_entry_is_used() -> None:
    headers = {"x-forwarded-for": " 203.0.113.5 , 10.0.0.1, 10.0.0.2"}
    assert resolve_client_identity(headers) == "203.0.113.5"


def test_alternate_headers_in_order() -> None:
    assert resolve_client_identity({"x-real-ip": "192.0.2.1", "x-client-ip": "192.0.2.2"}) == (
        "192.0.2.1"
    )
    assert resolve_client_identity({"x-client-ip": "192.0.2.2"}) == "192.0.2.2"


def test_missing_headers_synthesize_unique_keys() -> None:
    first = resolve_client_identity({})
    second = resolve_client_identity({})

    assert re.fullmatch(r"unknown-\d+-[a-z0-9]{9}", first)
    assert first != second

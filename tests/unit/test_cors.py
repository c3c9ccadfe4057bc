from gateway.middleware.cors import cors_headers

ALLOWED = ["https://app.example.com", "https://admin.example.com"]


def test_allowed_origin_is_echoed() -> None:
    headers = cors_headers("https://admin.example.com", ALLOWED)
    assert headers["Access-Control-Allow-Origin"] == "https://admin.example.com"


def test_local_development_origins_are_echoed() -> None:
    assert cors_headers("http://localhost:5173", ALLOWED)["Access-Control-Allow-Origin"] == (
        "http://localhost:5173"
    )
    assert cors_headers("http://127.0.0.1:8080", ALLOWED)["Access-Control-Allow-Origin"] == (
        "http://127.0.0.1:8080"
    )


def test_unknown_or_missing_origin_falls_back_to_first_allowed() -> None:
    assert cors_headers("https://evil.example.net", ALLOWED)["Access-Control-Allow-Origin"] == (
        "https://app.example.com"
    )
    assert cors_headers(None, ALLOWED)["Access-Control-Allow-Origin"] == "https://app.example.com"


def test_empty_allow_list_uses_local_default() -> None:
    headers = cors_headers(None, [])
    assert headers == {
        "Access-Control-Allow-Origin": "http://localhost:3000",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }

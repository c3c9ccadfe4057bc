import secrets
import string
from collections.abc import Mapping
from time import time

# Header preference order; X-Forwarded-For may carry a proxy chain.
IDENTITY_HEADERS = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip", "x-client-ip")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def resolve_client_identity(headers: Mapping[str, str]) -> str:
    """Derive a best-effort client key from connection/forwarding headers.

    Without any forwarding header a fresh ``unknown-...`` key is returned,
    so such callers are effectively never rate limited.
    """
    for header in IDENTITY_HEADERS:
        value = headers.get(header)
        if not value:
            continue
        if header == "x-forwarded-for":
            value = value.split(",")[0]
        value = value.strip()
        if value:
            return value

    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"unknown-{int(time() * 1000)}-{suffix}"

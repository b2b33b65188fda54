"""
Visitor identity - derives a privacy-preserving key from request origin.

The token is a rate-limit and session key only. It is not a credential:
the hash is non-cryptographic and collisions between addresses are tolerated.
"""

from typing import Mapping

from fastapi import Request

FALLBACK_IP = "127.0.0.1"

# Checked in order, first non-empty wins
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


def get_client_ip(headers: Mapping[str, str]) -> str:
    """
    Pick the client address from proxy headers.

    Args:
        headers: Request headers (lowercase names, or a case-insensitive mapping)

    Returns:
        The first non-empty candidate address, or the loopback fallback
    """
    for name in CLIENT_IP_HEADERS:
        value = headers.get(name)
        if not value:
            continue
        if name == "x-forwarded-for":
            # "client, proxy1, proxy2"
            value = value.split(",")[0]
        value = value.strip()
        if value:
            return value
    return FALLBACK_IP


def hash_ip(ip: str) -> str:
    """
    Hash an address into an identity token such as ``ip_5c2f1a0b``.

    Classic 31-multiplier string hash folded to a signed 32-bit integer.
    """
    h = 0
    for ch in ip:
        h = (h << 5) - h + ord(ch)
        h = ((h + 0x80000000) & 0xFFFFFFFF) - 0x80000000
    return f"ip_{abs(h):x}"


def resolve_identity(request: Request) -> str:
    """Identity token for an inbound request."""
    return hash_ip(get_client_ip(request.headers))

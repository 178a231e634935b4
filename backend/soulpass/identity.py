"""Caller identity.

Signature verification happens upstream (the wallet-auth gateway); by the
time a request reaches this service the address in ``X-Wallet-Address`` is
already authenticated. The core only normalizes it.
"""
from typing import Optional

from fastapi import Header

from soulpass.errors import ValidationError


def normalize_address(address: Optional[str]) -> str:
    """Strip and lower-case so checksum and plain forms compare equal."""
    if address is None or not address.strip():
        raise ValidationError("A wallet address is required")
    return address.strip().lower()


def short_address(address: str) -> str:
    """``0x1234...abcd`` form used for default display names."""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def get_caller_address(x_wallet_address: Optional[str] = Header(None)) -> str:
    """FastAPI dependency: the caller address forwarded by the wallet gateway."""
    return normalize_address(x_wallet_address)

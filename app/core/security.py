import re

from fastapi import Depends, HTTPException, Request, status
from slowapi.util import get_remote_address

from app.core.wager import CoinFlipWager

CALLER_HEADER = "X-Caller-Address"
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: str) -> str:
    """Validate a 20-byte hex address and return it lower-cased."""
    address = address.strip()
    if not _ADDRESS_RE.match(address):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid address: {address}",
        )
    return address.lower()


def get_caller(request: Request) -> str:
    """Caller identity for every wager call, taken from the X-Caller-Address header."""
    address = request.headers.get(CALLER_HEADER)
    if not address:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{CALLER_HEADER} header is required",
        )
    return normalize_address(address)


def get_wager(request: Request) -> CoinFlipWager:
    return request.app.state.deployment.wager


def rate_limit_key(request: Request) -> str:
    """Rate-limit per caller address, falling back to the client IP."""
    return request.headers.get(CALLER_HEADER, "").lower() or get_remote_address(request)


def require_owner(
    caller: str = Depends(get_caller),
    wager: CoinFlipWager = Depends(get_wager),
) -> str:
    """Dependency for privileged routes; rejects non-owners before any path parameter is looked at."""
    wager.access.require_owner(caller)
    return caller

"""
Revoked token store

Entries are keyed by the token's SHA-256 digest and live exactly as long as
the token itself would have, so the store never outgrows the set of tokens
that are still valid.
"""
import hashlib
import time
from typing import Optional

from jose import JWTError, jwt

from sinar.core.cache import CacheStore


def _token_key(token: str) -> str:
    return "blacklist:" + hashlib.sha256(token.encode("utf-8")).hexdigest()


def remaining_lifetime(token: str, now: Optional[float] = None) -> int:
    """Seconds until the token's exp claim, 0 when expired or unreadable"""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return 0
    exp = claims.get("exp")
    if exp is None:
        return 0
    now = time.time() if now is None else now
    return max(int(exp - now), 0)


class TokenBlacklist:
    def __init__(self, store: CacheStore):
        self.store = store

    async def add(self, token: str) -> bool:
        """
        Revoke a token

        Returns:
            bool: False when the token had already expired (nothing to store)
        """
        ttl = remaining_lifetime(token)
        if ttl <= 0:
            return False
        await self.store.set(_token_key(token), "1", ttl=max(ttl, 1))
        return True

    async def contains(self, token: str) -> bool:
        return await self.store.exists(_token_key(token))

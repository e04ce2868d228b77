"""Request helpers for extracting session credentials."""
from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.security import APIKeyHeader

from .database import DataStore
from .sessions import resolve

TOKEN_HEADER = "token"


class SessionToken:
    """Reads the session token from the ``token`` request header.

    Validation is left to the operation being called so that each operation
    can report an invalid token at the point its own check order demands.
    """

    def __init__(self) -> None:
        self._header = APIKeyHeader(name=TOKEN_HEADER, auto_error=False)

    async def __call__(self, request: Request) -> Optional[str]:
        raw: Optional[str] = await self._header(request)
        if raw is None:
            return None
        token = raw.strip()
        return token or None


def resolve_user_id(store: DataStore, token: Optional[str]) -> Optional[int]:
    with store.reading() as snapshot:
        return resolve(snapshot, token)


__all__ = ["SessionToken", "TOKEN_HEADER", "resolve_user_id"]

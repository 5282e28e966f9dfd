"""Explicit account scoping for API requests."""

from __future__ import annotations

from uuid import UUID

from fastapi import Header


async def get_account_id(x_account_id: UUID = Header(alias="X-Account-ID")) -> UUID:
    """FastAPI dependency returning the instructor account of the request.

    Identity is established upstream; the core only needs the account id to
    scope every read and write.
    """
    return x_account_id

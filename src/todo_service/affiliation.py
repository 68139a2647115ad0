"""
Group membership checks against the user service.

The user service answers ``GET /groups/{group_id}/users/{user_id}/verify`` with
200 when the user belongs to the group, 400 when not, and 500 on its own
failure.
"""
from __future__ import annotations

import enum
import logging
from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Depends, Path

from .auth import current_user_id
from .errors import InternalError, NotGroupMemberError
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


class AffiliationStatus(enum.Enum):
    OK = "ok"
    BAD_AFFILIATION = "bad_affiliation"
    INTERNAL = "internal"


class GroupAffiliationVerifier:
    """Ask the user service whether a user belongs to a group."""

    def __init__(self, base_url: str, client: httpx.Client) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> "GroupAffiliationVerifier":
        timeout = httpx.Timeout(
            settings.http_timeout_seconds,
            connect=30.0,
            read=settings.http_response_timeout_seconds,
        )
        limits = httpx.Limits(max_connections=500, max_keepalive_connections=100, keepalive_expiry=90.0)
        client = httpx.Client(
            timeout=timeout,
            limits=limits,
            transport=transport,
            headers={"Content-Type": "application/json; charset=UTF-8"},
        )
        return cls(f"http://{settings.user_api_host}:{settings.user_api_port}", client)

    def verify(self, group_id: int, user_id: str) -> AffiliationStatus:
        url = f"{self._base_url}/groups/{group_id}/users/{user_id}/verify"
        try:
            response = self._client.get(url)
        except httpx.HTTPError as e:
            logger.error("group affiliation request failed group_id=%s user_id=%s: %s", group_id, user_id, e)
            return AffiliationStatus.INTERNAL

        if response.status_code == 400:
            return AffiliationStatus.BAD_AFFILIATION
        if response.status_code >= 500:
            logger.error("user service answered %s for group_id=%s", response.status_code, group_id)
            return AffiliationStatus.INTERNAL
        return AffiliationStatus.OK

    def close(self) -> None:
        self._client.close()


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_affiliation_verifier() -> GroupAffiliationVerifier:
    """Process-wide verifier sharing one pooled HTTP client."""
    return GroupAffiliationVerifier.from_settings(get_settings())


# PUBLIC_INTERFACE
def require_group_member(
    group_id: int = Path(..., ge=1),
    user_id: str = Depends(current_user_id),
    verifier: GroupAffiliationVerifier = Depends(get_affiliation_verifier),
) -> str:
    """
    Dependency for group routes: resolve the session and check membership.

    Returns the caller's user id.

    Raises:
        UnauthenticatedError: no valid session (401).
        NotGroupMemberError: the caller is not in the group (400).
        InternalError: the user service failed or could not be reached (500).
    """
    status = verifier.verify(group_id, user_id)
    if status is AffiliationStatus.BAD_AFFILIATION:
        raise NotGroupMemberError()
    if status is AffiliationStatus.INTERNAL:
        raise InternalError()
    return user_id

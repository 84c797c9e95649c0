"""
Shared POST-and-classify logic for OAuth-style token endpoints.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Collection, Dict, Optional

import httpx

from homeboard.clients.errors import InvalidGrantError, TokenRefreshError, TransientNetworkError

_INVALID_GRANT_CODES = frozenset({"invalid_grant", "invalid_token", "unauthorized_client"})


def _error_envelope(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _describe(response: httpx.Response, envelope: Dict[str, Any]) -> str:
    code = envelope.get("error")
    if isinstance(code, dict):
        # Some providers nest {"error": {"code": ..., "message": ...}}.
        code = code.get("code") or code.get("status")
    description = (
        envelope.get("error_description")
        or envelope.get("message")
        or envelope.get("detail")
        or response.text[:200]
    )
    return f"{code}: {description}" if code else str(description)


async def post_token_request(
    url: str,
    *,
    identity: str,
    data: Optional[Dict[str, str]] = None,
    json: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    invalid_grant_statuses: Collection[int] = (),
) -> Dict[str, Any]:
    """
    POST to a token endpoint and return the decoded JSON body.

    Transport failures become ``TransientNetworkError``; an ``invalid_grant``
    style error code, or one of ``invalid_grant_statuses``, becomes
    ``InvalidGrantError``; anything else that is not a 2xx JSON object
    becomes ``TokenRefreshError``.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, data=data, json=json, headers=headers)
    except httpx.TimeoutException as exc:
        raise TransientNetworkError(
            f"{identity} token endpoint timed out.", identity=identity
        ) from exc
    except httpx.TransportError as exc:
        raise TransientNetworkError(
            f"{identity} token endpoint unreachable: {exc}", identity=identity
        ) from exc

    if not response.is_success:
        envelope = _error_envelope(response)
        message = f"{identity} token refresh failed ({response.status_code}): {_describe(response, envelope)}"
        code = envelope.get("error")
        if response.status_code in invalid_grant_statuses or (
            response.status_code in (HTTPStatus.BAD_REQUEST, HTTPStatus.UNAUTHORIZED)
            and isinstance(code, str)
            and code in _INVALID_GRANT_CODES
        ):
            raise InvalidGrantError(message, identity=identity, status_code=response.status_code)
        raise TokenRefreshError(message, identity=identity, status_code=response.status_code)

    try:
        payload = response.json()
    except ValueError as exc:
        raise TokenRefreshError(
            f"{identity} token endpoint returned a non-JSON body.",
            identity=identity,
            status_code=response.status_code,
        ) from exc
    if not isinstance(payload, dict):
        raise TokenRefreshError(
            f"{identity} token endpoint returned an unexpected payload.",
            identity=identity,
            status_code=response.status_code,
        )
    return payload


__all__ = ["post_token_request"]

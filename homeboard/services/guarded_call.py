"""Run authorized HTTP calls with one forced refresh on a 401."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Awaitable, Callable, Optional

import httpx

from homeboard.clients.errors import AuthorizationRejectedError
from homeboard.services.token_refresh import RefreshCoordinator

logger = logging.getLogger(__name__)

Operation = Callable[[str], Awaitable[httpx.Response]]


def is_unauthorized(response: httpx.Response) -> bool:
    return response.status_code == HTTPStatus.UNAUTHORIZED


class GuardedCall:
    """
    Inject the coordinator's token into ``operation`` and recover from a stale one.

    A rejected token triggers exactly one ``force_refresh`` and one retry. A
    second rejection raises ``AuthorizationRejectedError``. Every other
    response, successful or not, is handed back untouched.
    """

    def __init__(
        self,
        coordinator: RefreshCoordinator,
        *,
        is_rejected: Optional[Callable[[httpx.Response], bool]] = None,
    ) -> None:
        self._coordinator = coordinator
        self._is_rejected = is_rejected or is_unauthorized

    @property
    def coordinator(self) -> RefreshCoordinator:
        return self._coordinator

    async def execute(self, operation: Operation) -> httpx.Response:
        token = await self._coordinator.get_token()
        response = await operation(token)
        if not self._is_rejected(response):
            return response

        identity = self._coordinator.identity
        logger.info(
            "%s rejected the cached token (%s); forcing a refresh",
            identity,
            response.status_code,
        )
        fresh_token = await self._coordinator.force_refresh(rejected_token=token)
        retry = await operation(fresh_token)
        if self._is_rejected(retry):
            raise AuthorizationRejectedError(
                f"{identity} rejected a freshly refreshed token ({retry.status_code}).",
                identity=identity,
                status_code=retry.status_code,
            )
        return retry


__all__ = ["GuardedCall", "Operation", "is_unauthorized"]

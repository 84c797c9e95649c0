from __future__ import annotations

import asyncio

import httpx
import pytest

from homeboard.clients.errors import AuthorizationRejectedError, TransientNetworkError
from homeboard.services.guarded_call import GuardedCall
from homeboard.services.token_refresh import RefreshCoordinator

try:
    from .fakes import FakeClock, MemoryTokenStore, ScriptedMinter, minted
except ImportError:  # pragma: no cover
    from fakes import FakeClock, MemoryTokenStore, ScriptedMinter, minted  # type: ignore


class RecordingOperation:
    """Answers with scripted status codes and records which token each attempt used."""

    def __init__(self, *statuses: int) -> None:
        self.statuses = list(statuses)
        self.tokens: list[str] = []

    async def __call__(self, token: str) -> httpx.Response:
        self.tokens.append(token)
        status = self.statuses[min(len(self.tokens), len(self.statuses)) - 1]
        return httpx.Response(status, json={"token": token})


def _guard(minter: ScriptedMinter) -> GuardedCall:
    coordinator = RefreshCoordinator(
        "electrolux",
        store=MemoryTokenStore({"electrolux": {"refresh_token": "refresh-1"}}),
        minter=minter,
        default_lifetime_seconds=43200,
        clock=FakeClock(),
    )
    return GuardedCall(coordinator)


@pytest.mark.asyncio
async def test_single_401_forces_one_refresh_and_retries() -> None:
    minter = ScriptedMinter(minted("A"), minted("B"))
    guard = _guard(minter)
    operation = RecordingOperation(401, 200)

    response = await guard.execute(operation)

    assert response.status_code == 200
    assert operation.tokens == ["A", "B"]
    assert len(minter.calls) == 2


@pytest.mark.asyncio
async def test_second_401_is_terminal_after_exactly_one_retry() -> None:
    minter = ScriptedMinter(minted("A"), minted("B"), minted("C"))
    guard = _guard(minter)
    operation = RecordingOperation(401, 401, 200)

    with pytest.raises(AuthorizationRejectedError) as excinfo:
        await guard.execute(operation)

    assert excinfo.value.status_code == 401
    assert excinfo.value.identity == "electrolux"
    assert operation.tokens == ["A", "B"]
    assert len(minter.calls) == 2


@pytest.mark.asyncio
async def test_non_authorization_failure_is_returned_untouched() -> None:
    minter = ScriptedMinter(minted("A"), minted("B"))
    guard = _guard(minter)
    operation = RecordingOperation(503)

    response = await guard.execute(operation)

    assert response.status_code == 503
    assert operation.tokens == ["A"]
    assert len(minter.calls) == 1
    assert guard.coordinator.status().valid


@pytest.mark.asyncio
async def test_unreachable_minter_after_401_raises_instead_of_hanging() -> None:
    minter = ScriptedMinter(
        minted("A"),
        TransientNetworkError("connection refused", identity="electrolux"),
    )
    guard = _guard(minter)
    operation = RecordingOperation(401, 200)

    with pytest.raises(TransientNetworkError):
        await asyncio.wait_for(guard.execute(operation), timeout=1)
    assert operation.tokens == ["A"]


@pytest.mark.asyncio
async def test_concurrent_rejections_share_one_forced_refresh() -> None:
    minter = ScriptedMinter(minted("A"), minted("B"), minted("C"))
    guard = _guard(minter)

    async def operation(token: str) -> httpx.Response:
        return httpx.Response(401 if token == "A" else 200)

    first, second = await asyncio.gather(guard.execute(operation), guard.execute(operation))

    assert first.status_code == second.status_code == 200
    assert len(minter.calls) == 2


@pytest.mark.asyncio
async def test_custom_rejection_predicate() -> None:
    minter = ScriptedMinter(minted("A"), minted("B"))
    coordinator = _guard(minter).coordinator
    guard = GuardedCall(coordinator, is_rejected=lambda response: response.status_code == 403)
    operation = RecordingOperation(403, 200)

    response = await guard.execute(operation)

    assert response.status_code == 200
    assert operation.tokens == ["A", "B"]

"""Operator tool for inspecting and exercising stored provider credentials.

Two commands are available:

1. ``status`` prints the cache state of every credential identity, seeded from
   the token store exactly as the web process would see it at startup.
2. ``refresh`` forces a token refresh for the named identities (all of them by
   default). Use it after editing a refresh token by hand, or from cron to
   detect a revoked grant before the dashboard does.

Example usages::

    python -m scripts.refresh_tokens status
    python -m scripts.refresh_tokens refresh electrolux
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from pydantic import ValidationError

from homeboard.clients.errors import (
    CredentialError,
    InvalidGrantError,
    TransientNetworkError,
)
from homeboard.core.config import get_settings
from homeboard.core.logging import configure_logging
from homeboard.dependencies.clients import get_credential_registry
from homeboard.services.credentials import CredentialRegistry, UnknownCredentialError

EXIT_OK = 0
EXIT_INVALID_GRANT = 2
EXIT_TRANSIENT_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _exit_code_for(exc: Exception) -> int:
    if isinstance(exc, InvalidGrantError):
        return EXIT_INVALID_GRANT
    if isinstance(exc, TransientNetworkError):
        return EXIT_TRANSIENT_ERROR
    return EXIT_RUNTIME_ERROR


def _print_status(registry: CredentialRegistry) -> int:
    statuses = [status.model_dump() for status in registry.statuses()]
    print(json.dumps(statuses, indent=2))
    return EXIT_OK


async def _refresh(registry: CredentialRegistry, identities: Sequence[str]) -> int:
    """Refresh each identity independently; the worst failure sets the exit code."""
    targets = list(identities) or [coordinator.identity for coordinator in registry]
    exit_code = EXIT_OK
    for identity in targets:
        try:
            coordinator = registry.get(identity)
            await coordinator.force_refresh()
        except UnknownCredentialError:
            print(f"{identity}: unknown credential identity", file=sys.stderr)
            exit_code = max(exit_code, EXIT_RUNTIME_ERROR)
            continue
        except CredentialError as exc:
            print(f"{identity}: refresh failed: {exc}", file=sys.stderr)
            exit_code = max(exit_code, _exit_code_for(exc))
            continue

        warning = coordinator.last_persistence_error
        suffix = f" (not persisted: {warning})" if warning else ""
        print(f"{identity}: refreshed{suffix}")
    return exit_code


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect and refresh stored provider credentials."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "status",
        help="Show cache state for every credential identity.",
    )

    refresh_parser = subparsers.add_parser(
        "refresh",
        help="Force a token refresh and persist the result.",
    )
    refresh_parser.add_argument(
        "identities",
        nargs="*",
        help="Identities to refresh (default: all registered).",
    )
    return parser


def main(
    argv: list[str] | None = None,
    *,
    registry: Optional[CredentialRegistry] = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if registry is None:
        try:
            configure_logging(get_settings().log_level)
            registry = get_credential_registry()
        except ValidationError as exc:
            print(
                "Settings validation failed. Missing or invalid values detected:\n"
                f"{exc.json(indent=2)}",
                file=sys.stderr,
            )
            return EXIT_RUNTIME_ERROR
        except (RuntimeError, CredentialError) as exc:
            print(f"Unable to build credential registry: {exc}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

    if args.command == "status":
        return _print_status(registry)
    return asyncio.run(_refresh(registry, args.identities))


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())

"""Shared execution helper for Supabase query builders."""

from typing import Protocol

from nutriscan.domain.errors import PersistenceError


class _Executable(Protocol):
    def execute(self) -> object: ...


def execute(query: _Executable, *, action: str):  # type: ignore[no-untyped-def]
    """Run a query, reporting any store failure as PersistenceError."""
    try:
        return query.execute()
    except PersistenceError:
        raise
    except Exception as exc:
        raise PersistenceError(f"{action} failed: {exc}") from exc

"""
Collaborator ports -- pluggable lookups the kernel does not own.

Responsibility:
    Declares the user registry and section catalog interfaces that rollover
    and gap-status code consult, plus an in-memory user registry for
    single-node use and tests.

Architecture position:
    Kernel > Domain -- Protocol definitions, zero I/O.  The SQL-backed
    catalog lives in ``esg_kernel.selectors.catalog_selector``.

Invariants enforced:
    - Lookups never raise for unknown ids: an unknown user is inactive and
      nameless.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol, Sequence, runtime_checkable

from esg_kernel.domain.dtos import CatalogItemInfo


@runtime_checkable
class UserRegistry(Protocol):
    """Pluggable interface for user lookups owned by an external system."""

    def is_active(self, user_id: str) -> bool:
        """Return True if the user exists and is active."""
        ...

    def get_name(self, user_id: str) -> str | None:
        """Return the user's display name, or None if unknown."""
        ...


@runtime_checkable
class CatalogRegistry(Protocol):
    """Pluggable interface for the active section catalog."""

    def active_items(self, organization_id: str) -> Sequence[CatalogItemInfo]:
        """Non-deprecated catalog items of the organization, in sort order."""
        ...


class StaticUserRegistry:
    """UserRegistry backed by fixed in-memory data."""

    def __init__(
        self,
        active: Iterable[str] = (),
        names: Mapping[str, str] | None = None,
    ):
        self._active = frozenset(active)
        self._names = dict(names or {})

    def is_active(self, user_id: str) -> bool:
        return user_id in self._active

    def get_name(self, user_id: str) -> str | None:
        return self._names.get(user_id)

    def deactivate(self, user_id: str) -> None:
        self._active = self._active - {user_id}

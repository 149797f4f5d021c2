"""Document store interface.

The helpdesk treats persistence as an external collaborator with a small
generic contract: get / list / create / update / delete per record type.
Managers receive a ``DocumentStore`` as a parameter and never touch the
backend directly.

Filters passed to ``list`` are combined with logical AND.  A scalar value
means equality; a list, tuple, set or frozenset means membership.

``append`` adds to an embedded list (comments, attachments) without a
read-modify-write in the caller.

Provider failures surface as ``StorageError``; ``get`` returns None for a
missing record, while ``update`` and ``delete`` of a missing record raise
``StorageError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, TypeVar, runtime_checkable

from kioskdesk.helpdesk.models.records import Record

R = TypeVar("R", bound=Record)

Filter = Mapping[str, Any]


@runtime_checkable
class DocumentStore(Protocol):
    """Async protocol over the managed document store."""

    async def get(self, model: type[R], record_id: str) -> R | None:
        """Fetch by primary key.  Returns None if not found."""
        ...

    async def list(self, model: type[R], where: Filter | None = None) -> list[R]:
        """List records matching all ``where`` predicates."""
        ...

    async def create(self, record: R) -> R:
        """Insert a record and return the stored version."""
        ...

    async def update(self, model: type[R], record_id: str, fields: Mapping[str, Any]) -> R:
        """Apply a partial update and return the stored version."""
        ...

    async def append(
        self,
        model: type[R],
        record_id: str,
        field: str,
        item: Any,
        fields: Mapping[str, Any] | None = None,
    ) -> R:
        """Add *item* to the list *field* in one atomic write, together with *fields*.

        Concurrent appends to the same record all survive.
        """
        ...

    async def delete(self, model: type[R], record_id: str) -> None:
        """Remove a record."""
        ...


def is_multi(value: Any) -> bool:
    """Whether a filter value expresses membership rather than equality."""
    return isinstance(value, (list, tuple, set, frozenset))

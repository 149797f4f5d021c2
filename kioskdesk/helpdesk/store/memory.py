"""In-process document store.

Keeps records in plain dicts keyed by record type and id.  Selected with
``KIOSK_DOCUMENT_STORE=memory`` for demos and used as the backend of the
unit test suite.  Nothing is persisted across restarts.

Records are frozen pydantic models, so handing out the stored instance is
safe; updates replace the instance rather than mutating it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kioskdesk.helpdesk.errors import StorageError
from kioskdesk.helpdesk.models.records import Record
from kioskdesk.helpdesk.store.base import Filter, R, is_multi


class MemoryDocumentStore:
    """Dict-backed implementation of the DocumentStore protocol."""

    def __init__(self) -> None:
        self._tables: dict[type[Record], dict[str, Record]] = {}

    def _table(self, model: type[Record]) -> dict[str, Record]:
        return self._tables.setdefault(model, {})

    # -- Read ------------------------------------------------------------------

    async def get(self, model: type[R], record_id: str) -> R | None:
        return self._table(model).get(record_id)  # type: ignore[return-value]

    async def list(self, model: type[R], where: Filter | None = None) -> list[R]:
        rows = list(self._table(model).values())
        if where:
            rows = [row for row in rows if _matches(row, where)]
        return rows  # type: ignore[return-value]

    # -- Write -----------------------------------------------------------------

    async def create(self, record: R) -> R:
        table = self._table(type(record))
        if record.id in table:
            raise StorageError(f"create {type(record).__name__}", f"duplicate id '{record.id}'")
        table[record.id] = record
        return record

    async def update(self, model: type[R], record_id: str, fields: Mapping[str, Any]) -> R:
        table = self._table(model)
        current = table.get(record_id)
        if current is None:
            raise StorageError(f"update {model.__name__}", f"record '{record_id}' not found")
        # Re-validate so enum strings and nested dicts are coerced like on create.
        updated = model.model_validate({**current.model_dump(), **fields})
        table[record_id] = updated
        return updated

    async def append(
        self,
        model: type[R],
        record_id: str,
        field: str,
        item: Any,
        fields: Mapping[str, Any] | None = None,
    ) -> R:
        current = self._table(model).get(record_id)
        if current is None:
            raise StorageError(f"append {model.__name__}", f"record '{record_id}' not found")
        # No await between the read and the write.
        return await self.update(model, record_id, {**(fields or {}), field: [*getattr(current, field), item]})

    async def delete(self, model: type[R], record_id: str) -> None:
        table = self._table(model)
        if table.pop(record_id, None) is None:
            raise StorageError(f"delete {model.__name__}", f"record '{record_id}' not found")


def _matches(row: Record, where: Filter) -> bool:
    for key, expected in where.items():
        actual = getattr(row, key)
        if is_multi(expected):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True

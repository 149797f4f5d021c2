"""PostgreSQL document store.

Maps each record type to its ORM table and runs every operation in its own
short-lived ``AsyncSession``, so a manager call never holds a transaction
open across awaits on other collaborators.

JSONB columns (comments, attachments) are written through
``to_jsonable_python`` so nested pydantic records and datetimes serialize
cleanly; reads go back through ``model_validate`` which rebuilds them.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic_core import to_jsonable_python
from sqlalchemy import bindparam, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kioskdesk.helpdesk.db import tables
from kioskdesk.helpdesk.errors import StorageError
from kioskdesk.helpdesk.models.records import (
    KioskRecord,
    MembershipRecord,
    Record,
    TicketRecord,
    UserRecord,
    WorkspaceRecord,
)
from kioskdesk.helpdesk.store.base import Filter, R, is_multi

_TABLES: dict[type[Record], type[tables.Base]] = {
    UserRecord: tables.User,
    WorkspaceRecord: tables.Workspace,
    MembershipRecord: tables.WorkspaceUser,
    KioskRecord: tables.Kiosk,
    TicketRecord: tables.Ticket,
}

_JSON_COLUMNS = frozenset({"comments", "attachments", "location_attachments"})


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _column_values(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Convert record fields to ORM column values."""
    values = {key: _plain(value) for key, value in fields.items()}
    for key in _JSON_COLUMNS & values.keys():
        values[key] = to_jsonable_python(values[key])
    return values


class SqlDocumentStore:
    """SQLAlchemy implementation of the DocumentStore protocol."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _table(model: type[Record]) -> Any:
        try:
            return _TABLES[model]
        except KeyError:
            msg = f"No table mapped for {model.__name__}"
            raise TypeError(msg) from None

    # -- Read ------------------------------------------------------------------

    async def get(self, model: type[R], record_id: str) -> R | None:
        table = self._table(model)
        try:
            async with self._session_factory() as db:
                row = await db.get(table, record_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"get {model.__name__}", str(exc)) from exc
        return None if row is None else model.model_validate(row)

    async def list(self, model: type[R], where: Filter | None = None) -> list[R]:
        table = self._table(model)
        stmt = select(table)
        for key, value in (where or {}).items():
            column = getattr(table, key)
            stmt = stmt.where(column.in_([_plain(v) for v in value]) if is_multi(value) else column == _plain(value))

        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                rows = list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError(f"list {model.__name__}", str(exc)) from exc
        return [model.model_validate(row) for row in rows]

    # -- Write -----------------------------------------------------------------

    async def create(self, record: R) -> R:
        table = self._table(type(record))
        values = _column_values({k: getattr(record, k) for k in type(record).model_fields})
        # Let server defaults fill unset timestamps.
        values = {k: v for k, v in values.items() if not (v is None and k.endswith("_at"))}
        try:
            async with self._session_factory() as db:
                row = table(**values)
                db.add(row)
                await db.commit()
                await db.refresh(row)
        except SQLAlchemyError as exc:
            raise StorageError(f"create {type(record).__name__}", str(exc)) from exc
        return type(record).model_validate(row)

    async def update(self, model: type[R], record_id: str, fields: Mapping[str, Any]) -> R:
        table = self._table(model)
        try:
            async with self._session_factory() as db:
                row = await db.get(table, record_id)
                if row is None:
                    raise StorageError(f"update {model.__name__}", f"record '{record_id}' not found")
                for key, value in _column_values(fields).items():
                    setattr(row, key, value)
                await db.commit()
                await db.refresh(row)
        except SQLAlchemyError as exc:
            raise StorageError(f"update {model.__name__}", str(exc)) from exc
        return model.model_validate(row)

    async def append(
        self,
        model: type[R],
        record_id: str,
        field: str,
        item: Any,
        fields: Mapping[str, Any] | None = None,
    ) -> R:
        if field not in _JSON_COLUMNS:
            msg = f"{model.__name__}.{field} is not a list column"
            raise TypeError(msg)
        table = self._table(model)
        # jsonb || jsonb-array concatenates inside a single UPDATE.
        item_array = bindparam("item", [to_jsonable_python(item)], type_=JSONB)
        stmt = (
            update(table)
            .where(table.id == record_id)
            .values({**_column_values(fields or {}), field: getattr(table, field).op("||")(item_array)})
            .returning(table)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_factory() as db:
                row = (await db.execute(stmt)).scalar_one_or_none()
                if row is None:
                    raise StorageError(f"append {model.__name__}", f"record '{record_id}' not found")
                await db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"append {model.__name__}", str(exc)) from exc
        return model.model_validate(row)

    async def delete(self, model: type[R], record_id: str) -> None:
        table = self._table(model)
        try:
            async with self._session_factory() as db:
                row = await db.get(table, record_id)
                if row is None:
                    raise StorageError(f"delete {model.__name__}", f"record '{record_id}' not found")
                await db.delete(row)
                await db.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"delete {model.__name__}", str(exc)) from exc

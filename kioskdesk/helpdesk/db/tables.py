"""SQLAlchemy ORM models for PostgreSQL.

These are the single source of truth for the database schema. Alembic reads
``Base.metadata`` to autogenerate migration scripts.  Column names mirror the
fields of the records in ``models/records.py`` so rows convert with
``model_validate(row)``.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Timezone-aware timestamp type for all datetime columns.
TimestampTZ = DateTime(timezone=True)


class Base(DeclarativeBase):
    """Declarative base with naming convention for constraints."""

    pass


# Apply naming convention to the metadata for deterministic constraint names.
Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(unique=True)
    email: Mapped[str] = mapped_column(unique=True)
    username: Mapped[str]
    name: Mapped[str]
    cognito_id: Mapped[str] = mapped_column(unique=True)
    created_at: Mapped[datetime | None] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())


class Workspace(Base):
    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(primary_key=True)
    workspace_id: Mapped[str] = mapped_column(unique=True)
    name: Mapped[str]
    description: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str]
    created_at: Mapped[datetime | None] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())


class WorkspaceUser(Base):
    __tablename__ = "workspace_users"
    # Uniqueness of (workspace_id, user_id) is assumed by the access resolver
    # but not enforced: legacy data may hold duplicates.
    __table_args__ = (
        Index("ix_workspace_users_workspace_id", "workspace_id"),
        Index("ix_workspace_users_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(primary_key=True)
    workspace_id: Mapped[str]
    user_id: Mapped[str]
    role: Mapped[str | None]
    joined_at: Mapped[datetime | None] = mapped_column(TimestampTZ, server_default=func.now())


class Kiosk(Base):
    __tablename__ = "kiosks"
    __table_args__ = (
        UniqueConstraint("kiosk_id", name="uq_kiosks_kiosk_id"),
        Index("ix_kiosks_workspace_id", "workspace_id"),
    )

    id: Mapped[str] = mapped_column(primary_key=True)
    kiosk_id: Mapped[str]
    workspace_id: Mapped[str]
    address: Mapped[str] = mapped_column(Text)
    location_description: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    remark: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(server_default="ACTIVE")
    location_attachments: Mapped[list] = mapped_column(JSONB, nullable=False, server_default="[]")
    created_at: Mapped[datetime | None] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())


class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        UniqueConstraint("ticket_id", name="uq_tickets_ticket_id"),
        Index("ix_tickets_workspace_id", "workspace_id"),
        Index("ix_tickets_kiosk_id", "kiosk_id"),
        Index("ix_tickets_assignee_id", "assignee_id"),
    )

    id: Mapped[str] = mapped_column(primary_key=True)
    ticket_id: Mapped[str]
    workspace_id: Mapped[str]
    kiosk_id: Mapped[str]
    reporter_id: Mapped[str]
    assignee_id: Mapped[str | None]
    status: Mapped[str] = mapped_column(server_default="OPEN")
    title: Mapped[str] = mapped_column(Text)
    description: Mapped[str] = mapped_column(Text)
    comments: Mapped[list] = mapped_column(JSONB, nullable=False, server_default="[]")
    attachments: Mapped[list] = mapped_column(JSONB, nullable=False, server_default="[]")
    reported_date: Mapped[datetime] = mapped_column(TimestampTZ)
    updated_date: Mapped[datetime | None] = mapped_column(TimestampTZ)
    maintenance_time: Mapped[datetime | None] = mapped_column(TimestampTZ)
    is_deleted: Mapped[bool] = mapped_column(default=False, server_default="false")
    deleted_at: Mapped[datetime | None] = mapped_column(TimestampTZ)
    deleted_by: Mapped[str | None]

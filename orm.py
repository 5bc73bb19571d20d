from datetime import datetime, timezone
from sqlalchemy import String, DateTime, Text, ForeignKey, Index, event, inspect, select
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from db import Base
from errors import LedgerImmutableError


class UTCDateTime(TypeDecorator):
    """Stores naive UTC, hands back aware UTC datetimes."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class AssetORM(Base):
    __tablename__ = "assets"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String, nullable=False, default="available", index=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class BorrowerORM(Base):
    __tablename__ = "borrowers"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    contact: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class LendingRecordORM(Base):
    __tablename__ = "lending_records"
    __table_args__ = (
        Index("ix_lending_records_asset_open", "asset_id", "returned_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    asset_id: Mapped[str] = mapped_column(
        String, ForeignKey("assets.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    # no FK: the record has to outlive the borrower's directory entry
    borrower_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    borrower_name_snapshot: Mapped[str] = mapped_column(String(100), nullable=False)
    borrower_contact_snapshot: Mapped[str] = mapped_column(String(255), nullable=False)

    lent_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    returned_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


FROZEN_RECORD_FIELDS = (
    "asset_id",
    "borrower_id",
    "borrower_name_snapshot",
    "borrower_contact_snapshot",
    "lent_at",
)


@event.listens_for(LendingRecordORM, "before_delete")
def refuse_record_delete(mapper, connection, target):
    raise LedgerImmutableError(f"lending record {target.id} cannot be deleted")


@event.listens_for(LendingRecordORM, "before_update")
def refuse_frozen_record_update(mapper, connection, target):
    # read the row itself: attribute history is empty once the instance is expired
    stored_returned_at = connection.execute(
        select(LendingRecordORM.returned_at).where(LendingRecordORM.id == target.id)
    ).scalar()
    if stored_returned_at is not None:
        raise LedgerImmutableError(f"lending record {target.id} is closed")

    state = inspect(target)
    changed = [name for name in FROZEN_RECORD_FIELDS if state.attrs[name].history.has_changes()]
    if changed:
        raise LedgerImmutableError(
            f"lending record {target.id}: {', '.join(changed)} cannot change"
        )

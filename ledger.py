from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from errors import NotFoundError
from models import DateRange, LendingRecord, Borrower
from orm import AssetORM, LendingRecordORM


def record_to_schema(r: LendingRecordORM) -> LendingRecord:
    return LendingRecord(
        id=r.id,
        asset_id=r.asset_id,
        borrower_id=r.borrower_id,
        borrower_name_snapshot=r.borrower_name_snapshot,
        borrower_contact_snapshot=r.borrower_contact_snapshot,
        lent_at=r.lent_at,
        returned_at=r.returned_at,
        notes=r.notes,
    )


def merge_notes(existing: Optional[str], extra: Optional[str]) -> Optional[str]:
    extra = (extra or "").strip()
    if not extra:
        return existing
    if not existing:
        return extra
    return f"{existing}\n{extra}"


# ---------- writes (coordinator only) ----------
def get_open_records(db: Session, asset_id: str) -> list[LendingRecordORM]:
    stmt = (
        select(LendingRecordORM)
        .where(LendingRecordORM.asset_id == asset_id, LendingRecordORM.returned_at.is_(None))
        .order_by(LendingRecordORM.lent_at.desc())
    )
    return list(db.execute(stmt).scalars().all())


def open_record(
    db: Session,
    *,
    asset_id: str,
    borrower: Borrower,
    lent_at: datetime,
    notes: Optional[str],
) -> LendingRecordORM:
    record = LendingRecordORM(
        id=str(uuid4()),
        asset_id=asset_id,
        borrower_id=borrower.id,
        borrower_name_snapshot=borrower.name,
        borrower_contact_snapshot=borrower.contact,
        lent_at=lent_at,
        returned_at=None,
        notes=merge_notes(None, notes),
    )
    db.add(record)
    db.flush()
    return record


def close_record(
    db: Session,
    record: LendingRecordORM,
    *,
    returned_at: datetime,
    notes: Optional[str],
) -> LendingRecordORM:
    # returned_at >= lent_at even if the clock stepped backwards
    record.returned_at = max(returned_at, record.lent_at)
    record.notes = merge_notes(record.notes, notes)
    db.flush()
    return record


# ---------- reads ----------
def count_records(db: Session, asset_id: str) -> int:
    stmt = select(func.count()).select_from(LendingRecordORM).where(LendingRecordORM.asset_id == asset_id)
    return int(db.execute(stmt).scalar_one())


def list_history(db: Session, asset_id: str, date_range: Optional[DateRange] = None) -> list[LendingRecord]:
    if db.get(AssetORM, asset_id) is None:
        raise NotFoundError("asset", asset_id)

    stmt = select(LendingRecordORM).where(LendingRecordORM.asset_id == asset_id)
    if date_range is not None:
        if date_range.start is not None:
            stmt = stmt.where(LendingRecordORM.lent_at >= date_range.start)
        if date_range.end is not None:
            stmt = stmt.where(LendingRecordORM.lent_at <= date_range.end)
    stmt = stmt.order_by(LendingRecordORM.lent_at.desc(), LendingRecordORM.id.desc())
    return [record_to_schema(r) for r in db.execute(stmt).scalars().all()]


def list_borrower_history(db: Session, borrower_id: str) -> list[LendingRecord]:
    stmt = (
        select(LendingRecordORM)
        .where(LendingRecordORM.borrower_id == borrower_id)
        .order_by(LendingRecordORM.lent_at.desc(), LendingRecordORM.id.desc())
    )
    return [record_to_schema(r) for r in db.execute(stmt).scalars().all()]


def list_open_records(db: Session) -> list[LendingRecord]:
    stmt = (
        select(LendingRecordORM)
        .where(LendingRecordORM.returned_at.is_(None))
        .order_by(LendingRecordORM.lent_at.desc(), LendingRecordORM.id.desc())
    )
    return [record_to_schema(r) for r in db.execute(stmt).scalars().all()]


def get_active_record(db: Session, asset_id: str) -> Optional[LendingRecord]:
    rows = get_open_records(db, asset_id)
    return record_to_schema(rows[0]) if rows else None

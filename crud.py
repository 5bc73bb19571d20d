from __future__ import annotations

import logging
from datetime import datetime, timezone

from typing import Optional
from uuid import uuid4

from sqlalchemy import select, delete, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import deletion_guard
from errors import ConflictError
from models import Asset, AssetIn, AssetStatus, AssetUpdate, Borrower, BorrowerIn, BorrowerUpdate
from orm import AssetORM, BorrowerORM
from unit_of_work import UnitOfWork

logger = logging.getLogger("app.registry")

ALLOWED_SORTS = {
    "name": AssetORM.name,
    "category": AssetORM.category,
    "status": AssetORM.status,
    "updated_at": AssetORM.updated_at,
}

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def persist(db: Session, *, commit: bool) -> None:
    if commit:
        db.commit()
    else:
        db.flush()

def asset_to_schema(a: AssetORM) -> Asset:
    return Asset(
        id=a.id,
        name=a.name,
        category=a.category,
        description=a.description,
        status=AssetStatus(a.status),
        created_at=a.created_at,
        updated_at=a.updated_at,
    )

def borrower_to_schema(b: BorrowerORM) -> Borrower:
    return Borrower(
        id=b.id,
        name=b.name,
        contact=b.contact,
        created_at=b.created_at,
        updated_at=b.updated_at,
    )


# ---------- Asset ----------
def get_asset(db: Session, asset_id: str) -> Optional[Asset]:
    row = db.get(AssetORM, asset_id, populate_existing=True)
    return asset_to_schema(row) if row else None


def create_asset(db: Session, body: AssetIn, *, commit: bool = True) -> Asset:
    now = utcnow()
    a = AssetORM(
        id=str(uuid4()),
        name=body.name.strip(),
        category=body.category.strip(),
        description=body.description.strip() if body.description else None,
        status=AssetStatus.AVAILABLE.value,
        created_at=now,
        updated_at=now,
    )
    db.add(a)
    persist(db, commit=commit)
    if commit:
        db.refresh(a)
    return asset_to_schema(a)


def update_asset(db: Session, asset_id: str, body: AssetUpdate, *, commit: bool = True) -> Optional[Asset]:
    a = db.get(AssetORM, asset_id)
    if not a:
        return None

    # status is not editable here; it moves only through the lending coordinator
    data = body.model_dump(exclude_unset=True)
    for k, v in data.items():
        if v is None and k != "description":
            continue
        setattr(a, k, v.strip() if isinstance(v, str) else v)

    a.updated_at = utcnow()

    persist(db, commit=commit)
    if commit:
        db.refresh(a)
    return asset_to_schema(a)


def set_asset_status(
    db: Session,
    asset_id: str,
    *,
    expected: AssetStatus,
    target: AssetStatus,
    at: datetime,
) -> bool:
    """Compare-and-set of the status column. Call only inside an asset unit.

    Being the first write of the unit, it also claims the row's write lock.
    """
    result = db.execute(
        update(AssetORM)
        .where(AssetORM.id == asset_id, AssetORM.status == expected.value)
        .values(status=target.value, updated_at=at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def delete_asset(uow: UnitOfWork, asset_id: str) -> bool:
    with uow.for_asset(asset_id) as db:
        # no-op write so a concurrent lend on this row waits for us (or we for it)
        claimed = db.execute(
            update(AssetORM)
            .where(AssetORM.id == asset_id)
            .values(updated_at=AssetORM.updated_at)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not claimed:
            return False

        try:
            deletion_guard.assert_deletable(db, asset_id)
            db.execute(delete(AssetORM).where(AssetORM.id == asset_id))
        except ConflictError:
            logger.info("asset_id=%s delete refused: %s", asset_id, deletion_guard.HAS_HISTORY)
            raise
        except IntegrityError as exc:
            logger.warning("asset_id=%s delete hit lending_records foreign key", asset_id)
            raise ConflictError(deletion_guard.HAS_HISTORY) from exc

    logger.info("asset_id=%s deleted", asset_id)
    return True


def build_assets_query(q: str | None, status: str | None, category: str | None):
    stmt = select(AssetORM)

    if q:
        like = f"%{q}%"
        stmt = stmt.where(
            or_(
                AssetORM.name.ilike(like),
                AssetORM.category.ilike(like),
                AssetORM.description.ilike(like),
            )
        )
    if status:
        stmt = stmt.where(AssetORM.status == status)

    if category:
        stmt = stmt.where(AssetORM.category == category)

    return stmt

def assets_meta(
    db: Session,
    *,
    q: str | None,
    status: str | None,
    category: str | None,
    limit: int,
    offset: int,
) -> dict:
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500
    if offset < 0:
        offset = 0

    total = count_assets_filtered(db, q=q, status=status, category=category)
    total_pages = max(1, (total + limit - 1) // limit)

    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "total_pages": total_pages,
    }

def count_assets_filtered(db: Session, *, q: str | None, status: str | None, category: str | None) -> int:
    stmt = build_assets_query(q, status, category)
    count_stmt = select(func.count()).select_from(stmt.subquery())
    return int(db.execute(count_stmt).scalar_one())

def list_assets_filtered(
    db: Session,
    *,
    q: str | None,
    status: str | None,
    category: str | None,
    sort: str,
    order: str,
    limit: int,
    offset: int,
) -> list[Asset]:
    stmt = build_assets_query(q, status, category)

    col = ALLOWED_SORTS.get(sort, AssetORM.name)
    desc = (order or "").lower() == "desc"
    stmt = stmt.order_by(col.desc() if desc else col.asc(), AssetORM.id.asc())

    stmt = stmt.limit(limit).offset(offset)
    rows = db.execute(stmt).scalars().all()
    return [asset_to_schema(a) for a in rows]

def list_lent_assets(db: Session) -> list[Asset]:
    stmt = (
        select(AssetORM)
        .where(AssetORM.status == AssetStatus.LENT.value)
        .order_by(AssetORM.name.asc(), AssetORM.id.asc())
    )
    return [asset_to_schema(a) for a in db.execute(stmt).scalars().all()]

def list_categories(db: Session) -> list[str]:
    stmt = select(AssetORM.category).distinct().order_by(AssetORM.category.asc())
    return [r[0] for r in db.execute(stmt).all() if r[0]]


# ---------- Borrower ----------
def get_borrower(db: Session, borrower_id: str) -> Optional[Borrower]:
    row = db.get(BorrowerORM, borrower_id, populate_existing=True)
    return borrower_to_schema(row) if row else None


def list_borrowers(db: Session) -> list[Borrower]:
    rows = db.execute(
        select(BorrowerORM).order_by(BorrowerORM.name.asc(), BorrowerORM.id.asc())
    ).scalars().all()
    return [borrower_to_schema(b) for b in rows]


def create_borrower(db: Session, body: BorrowerIn, *, commit: bool = True) -> Borrower:
    now = utcnow()
    b = BorrowerORM(
        id=str(uuid4()),
        name=body.name.strip(),
        contact=body.contact.strip(),
        created_at=now,
        updated_at=now,
    )
    db.add(b)
    persist(db, commit=commit)
    if commit:
        db.refresh(b)
    return borrower_to_schema(b)


def update_borrower(db: Session, borrower_id: str, body: BorrowerUpdate, *, commit: bool = True) -> Optional[Borrower]:
    b = db.get(BorrowerORM, borrower_id)
    if not b:
        return None

    # lending records keep their own snapshot of name/contact; nothing to cascade
    data = body.model_dump(exclude_unset=True)
    for k, v in data.items():
        if v is None:
            continue
        setattr(b, k, v.strip() if isinstance(v, str) else v)
    b.updated_at = utcnow()

    persist(db, commit=commit)
    if commit:
        db.refresh(b)
    return borrower_to_schema(b)


def delete_borrower(db: Session, borrower_id: str, *, commit: bool = True) -> bool:
    result = db.execute(delete(BorrowerORM).where(BorrowerORM.id == borrower_id))
    persist(db, commit=commit)
    return result.rowcount > 0

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from errors import ConflictError
from orm import LendingRecordORM

HAS_HISTORY = "has lending history"


def can_delete(db: Session, asset_id: str) -> bool:
    # open or closed, any record protects the asset
    used = db.execute(select(exists().where(LendingRecordORM.asset_id == asset_id))).scalar()
    return not used


def assert_deletable(db: Session, asset_id: str) -> None:
    if not can_delete(db, asset_id):
        raise ConflictError(HAS_HISTORY)

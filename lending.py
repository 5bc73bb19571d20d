from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

import crud
import ledger
from errors import ConflictError, InternalInconsistencyError, NotFoundError
from models import Asset, AssetStatus, LendingResult
from unit_of_work import UnitOfWork

logger = logging.getLogger("app.lending")


@dataclass(frozen=True)
class Transition:
    name: str
    source: AssetStatus
    target: AssetStatus
    refusals: dict[AssetStatus, str]


LEND = Transition(
    "lend",
    AssetStatus.AVAILABLE,
    AssetStatus.LENT,
    {
        AssetStatus.LENT: "already lent",
        AssetStatus.MAINTENANCE: "unavailable",
    },
)
RETURN = Transition(
    "return",
    AssetStatus.LENT,
    AssetStatus.AVAILABLE,
    {
        AssetStatus.AVAILABLE: "not currently lent",
        AssetStatus.MAINTENANCE: "cannot return from maintenance",
    },
)
BEGIN_MAINTENANCE = Transition(
    "begin_maintenance",
    AssetStatus.AVAILABLE,
    AssetStatus.MAINTENANCE,
    {
        AssetStatus.LENT: "currently lent",
        AssetStatus.MAINTENANCE: "already under maintenance",
    },
)
END_MAINTENANCE = Transition(
    "end_maintenance",
    AssetStatus.MAINTENANCE,
    AssetStatus.AVAILABLE,
    {
        AssetStatus.AVAILABLE: "not under maintenance",
        AssetStatus.LENT: "currently lent",
    },
)


# the only writer of asset status and lending records
class LendingCoordinator:
    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    def lend(self, asset_id: str, borrower_id: str, notes: Optional[str] = None) -> LendingResult:
        with self.uow.for_asset(asset_id) as db:
            asset = self._apply(db, asset_id, LEND)
            self._expect_open_records(db, asset_id, 0)

            borrower = crud.get_borrower(db, borrower_id)
            if borrower is None:
                raise NotFoundError("borrower", borrower_id)

            record = ledger.open_record(
                db,
                asset_id=asset_id,
                borrower=borrower,
                lent_at=asset.updated_at,
                notes=notes,
            )
            result = LendingResult(asset=asset, record=ledger.record_to_schema(record))

        logger.info("lend asset_id=%s borrower_id=%s record_id=%s", asset_id, borrower_id, result.record.id)
        return result

    def return_asset(self, asset_id: str, notes: Optional[str] = None) -> LendingResult:
        with self.uow.for_asset(asset_id) as db:
            asset = self._apply(db, asset_id, RETURN)
            (record,) = self._expect_open_records(db, asset_id, 1)

            ledger.close_record(db, record, returned_at=asset.updated_at, notes=notes)
            result = LendingResult(asset=asset, record=ledger.record_to_schema(record))

        logger.info("return asset_id=%s record_id=%s", asset_id, result.record.id)
        return result

    def begin_maintenance(self, asset_id: str) -> Asset:
        with self.uow.for_asset(asset_id) as db:
            asset = self._apply(db, asset_id, BEGIN_MAINTENANCE)
            self._expect_open_records(db, asset_id, 0)
        logger.info("maintenance started asset_id=%s", asset_id)
        return asset

    def end_maintenance(self, asset_id: str) -> Asset:
        with self.uow.for_asset(asset_id) as db:
            asset = self._apply(db, asset_id, END_MAINTENANCE)
            self._expect_open_records(db, asset_id, 0)
        logger.info("maintenance ended asset_id=%s", asset_id)
        return asset

    def _apply(self, db: Session, asset_id: str, transition: Transition) -> Asset:
        changed = crud.set_asset_status(
            db,
            asset_id,
            expected=transition.source,
            target=transition.target,
            at=crud.utcnow(),
        )
        try:
            asset = crud.get_asset(db, asset_id)
        except ValueError:
            raise self._inconsistent(asset_id, "unknown status value stored") from None
        if asset is None:
            raise NotFoundError("asset", asset_id)
        if changed:
            return asset

        reason = transition.refusals.get(asset.status)
        if reason is None:
            # status reads as the source state, yet the compare-and-set matched no row
            raise self._inconsistent(asset_id, f"{transition.name} matched no row in status {asset.status.value}")
        logger.warning("%s refused asset_id=%s status=%s", transition.name, asset_id, asset.status.value)
        raise ConflictError(reason)

    def _expect_open_records(self, db: Session, asset_id: str, expected: int) -> list:
        records = ledger.get_open_records(db, asset_id)
        if len(records) != expected:
            raise self._inconsistent(
                asset_id, f"expected {expected} open lending record(s), found {len(records)}"
            )
        return records

    def _inconsistent(self, asset_id: str, detail: str) -> InternalInconsistencyError:
        logger.critical("ledger inconsistency asset_id=%s: %s", asset_id, detail)
        return InternalInconsistencyError(asset_id, detail)

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
import ledger
from dependencies import get_coordinator, get_db
from filter_helpers import build_date_range
from lending import LendingCoordinator
from models import Asset, LendIn, LendingRecord, LendingResult, ReturnIn

router = APIRouter(prefix="/lending")


@router.post("/lend", response_model=LendingResult)
def lend_api(
    body: LendIn,
    coordinator: LendingCoordinator = Depends(get_coordinator),
):
    return coordinator.lend(body.asset_id, body.borrower_id, body.notes)


@router.post("/return", response_model=LendingResult)
def return_api(
    body: ReturnIn,
    coordinator: LendingCoordinator = Depends(get_coordinator),
):
    return coordinator.return_asset(body.asset_id, body.notes)


@router.get("/history/{asset_id}", response_model=list[LendingRecord])
def history_api(
    asset_id: str,
    lent_from: Optional[datetime] = None,
    lent_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    return ledger.list_history(db, asset_id, build_date_range(lent_from, lent_to))


@router.get("/active", response_model=list[LendingRecord])
def active_api(db: Session = Depends(get_db)):
    return ledger.list_open_records(db)


@router.get("/current", response_model=list[Asset])
def current_api(db: Session = Depends(get_db)):
    return crud.list_lent_assets(db)

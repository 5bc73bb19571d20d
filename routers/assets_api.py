from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import get_coordinator, get_db, get_uow
from filter_helpers import (
    blank_to_none,
    normalize_limit,
    normalize_offset,
    normalize_order,
    normalize_sort,
    normalize_status,
)
from lending import LendingCoordinator
from models import Asset, AssetIn, AssetUpdate, AssetsMeta
from unit_of_work import UnitOfWork

router = APIRouter()


@router.get("/assets", response_model=list[Asset])
def list_assets_api(
    q: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    sort: str = "name",
    order: str = "asc",
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return crud.list_assets_filtered(
        db,
        q=q,
        status=normalize_status(status),
        category=blank_to_none(category),
        sort=normalize_sort(sort),
        order=normalize_order(order),
        limit=normalize_limit(limit),
        offset=normalize_offset(offset),
    )


@router.get("/assets/meta", response_model=AssetsMeta)
def assets_meta_api(
    q: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    meta = crud.assets_meta(
        db,
        q=q,
        status=normalize_status(status),
        category=blank_to_none(category),
        limit=normalize_limit(limit),
        offset=normalize_offset(offset),
    )
    return AssetsMeta(**meta)


@router.post("/assets", response_model=Asset, status_code=201)
def create_asset_api(
    body: AssetIn,
    db: Session = Depends(get_db),
):
    return crud.create_asset(db, body)


@router.get("/assets/{asset_id}", response_model=Asset)
def get_asset_api(
    asset_id: str,
    db: Session = Depends(get_db),
):
    asset = crud.get_asset(db, asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="asset not found")
    return asset


@router.patch("/assets/{asset_id}", response_model=Asset)
def update_asset_api(
    asset_id: str,
    body: AssetUpdate,
    db: Session = Depends(get_db),
):
    updated = crud.update_asset(db, asset_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="asset not found")
    return updated


@router.delete("/assets/{asset_id}", status_code=204)
def delete_asset_api(
    asset_id: str,
    uow: UnitOfWork = Depends(get_uow),
):
    ok = crud.delete_asset(uow, asset_id)
    if not ok:
        raise HTTPException(status_code=404, detail="asset not found")
    return None


@router.post("/assets/{asset_id}/maintenance", response_model=Asset)
def begin_maintenance_api(
    asset_id: str,
    coordinator: LendingCoordinator = Depends(get_coordinator),
):
    return coordinator.begin_maintenance(asset_id)


@router.post("/assets/{asset_id}/maintenance/end", response_model=Asset)
def end_maintenance_api(
    asset_id: str,
    coordinator: LendingCoordinator = Depends(get_coordinator),
):
    return coordinator.end_maintenance(asset_id)

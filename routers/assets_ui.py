from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

import crud
import ledger
from dependencies import get_coordinator, get_db, get_uow
from errors import ConflictError, LendingTimeoutError, NotFoundError
from filter_helpers import (
    blank_to_none,
    normalize_order,
    normalize_sort,
    normalize_status,
)
from lending import LendingCoordinator
from unit_of_work import UnitOfWork

router = APIRouter()
PAGE_SIZE = 50

# shown back to the user; integrity errors go to the 500 handler instead
USER_ERRORS = (NotFoundError, ConflictError, LendingTimeoutError)


def back_to_list(error: Optional[str] = None) -> RedirectResponse:
    url = "/ui/assets"
    if error:
        url = f"{url}?{urlencode({'error': error})}"
    return RedirectResponse(url=url, status_code=303)


@router.get("/ui/assets", response_class=HTMLResponse)
def assets_ui(
    request: Request,
    q: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "name",
    order: str = "asc",
    page: int = 1,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    if page < 1:
        page = 1

    status = normalize_status(status)
    category = blank_to_none(category)
    sort = normalize_sort(sort)
    order = normalize_order(order)

    meta = crud.assets_meta(
        db,
        q=q,
        status=status,
        category=category,
        limit=PAGE_SIZE,
        offset=(page - 1) * PAGE_SIZE,
    )
    total = meta["total"]
    total_pages = meta["total_pages"]
    if page > total_pages:
        page = total_pages

    offset = (page - 1) * PAGE_SIZE
    assets = crud.list_assets_filtered(
        db,
        q=q,
        status=status,
        category=category,
        sort=sort,
        order=order,
        limit=PAGE_SIZE,
        offset=offset,
    )

    active_records = {}
    for asset in assets:
        active = ledger.get_active_record(db, asset.id)
        if active:
            active_records[asset.id] = active

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "assets.html",
        {
            "assets": assets,
            "active_records": active_records,
            "borrowers": crud.list_borrowers(db),
            "categories": crud.list_categories(db),
            "q": q or "",
            "status": status or "",
            "category": category or "",
            "sort": sort,
            "order": order,
            "page": page,
            "total_pages": total_pages,
            "total": total,
            "page_size": PAGE_SIZE,
            "error": error,
        },
    )


@router.post("/ui/assets/{asset_id}/lend")
def lend_asset_ui(
    asset_id: str,
    borrower_id: str = Form(...),
    notes: Optional[str] = Form(None),
    coordinator: LendingCoordinator = Depends(get_coordinator),
):
    try:
        coordinator.lend(asset_id, borrower_id, notes)
    except USER_ERRORS as exc:
        return back_to_list(str(exc))
    return back_to_list()


@router.post("/ui/assets/{asset_id}/return")
def return_asset_ui(
    asset_id: str,
    notes: Optional[str] = Form(None),
    coordinator: LendingCoordinator = Depends(get_coordinator),
):
    try:
        coordinator.return_asset(asset_id, notes)
    except USER_ERRORS as exc:
        return back_to_list(str(exc))
    return back_to_list()


@router.post("/ui/assets/{asset_id}/delete")
def delete_asset_ui(
    asset_id: str,
    uow: UnitOfWork = Depends(get_uow),
):
    try:
        deleted = crud.delete_asset(uow, asset_id)
    except USER_ERRORS as exc:
        return back_to_list(str(exc))
    if not deleted:
        return back_to_list("asset not found")
    return back_to_list()


@router.get("/ui/assets/{asset_id}/history", response_class=HTMLResponse)
def asset_history_ui(request: Request, asset_id: str, db: Session = Depends(get_db)):
    asset = crud.get_asset(db, asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="asset not found")

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "history.html",
        {
            "asset": asset,
            "records": ledger.list_history(db, asset_id),
        },
    )

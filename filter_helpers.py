from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from pydantic import ValidationError

from models import AssetStatus, DateRange

VALID_STATUSES = {s.value for s in AssetStatus}
VALID_SORTS = {"name", "category", "status", "updated_at"}
VALID_ORDERS = {"asc", "desc"}


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value == "":
        return None
    return value


def normalize_status(status: Optional[str]) -> Optional[str]:
    if status in VALID_STATUSES:
        return status
    return None


def normalize_sort(sort: str) -> str:
    if sort in VALID_SORTS:
        return sort
    return "name"


def normalize_order(order: str) -> str:
    if order in VALID_ORDERS:
        return order
    return "asc"


def normalize_limit(limit: int, *, min_value: int = 1, max_value: int = 500) -> int:
    if limit < min_value:
        return min_value
    if limit > max_value:
        return max_value
    return limit


def normalize_offset(offset: int) -> int:
    if offset < 0:
        return 0
    return offset


def build_date_range(start: Optional[datetime], end: Optional[datetime]) -> Optional[DateRange]:
    if start is None and end is None:
        return None
    try:
        return DateRange(start=start, end=end)
    except ValidationError:
        raise HTTPException(status_code=422, detail="lent_from must not be after lent_to") from None

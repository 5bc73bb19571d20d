import math
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator


class AssetStatus(str, Enum):
    AVAILABLE = "available"
    LENT = "lent"
    MAINTENANCE = "maintenance"


class AssetIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    category: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)

class AssetUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)

class Asset(AssetIn):
    id: str
    status: AssetStatus = AssetStatus.AVAILABLE
    created_at: datetime
    updated_at: datetime

class AssetsMeta(BaseModel):
    total: int
    limit: int
    offset: int
    total_pages: int


class BorrowerIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    contact: str = Field(min_length=1, max_length=255)

class BorrowerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    contact: Optional[str] = Field(default=None, min_length=1, max_length=255)

class Borrower(BorrowerIn):
    id: str
    created_at: datetime
    updated_at: datetime


class LendIn(BaseModel):
    asset_id: str = Field(min_length=1)
    borrower_id: str = Field(min_length=1)
    notes: Optional[str] = Field(default=None, max_length=1000)

class ReturnIn(BaseModel):
    asset_id: str = Field(min_length=1)
    notes: Optional[str] = Field(default=None, max_length=1000)


class LendingRecord(BaseModel):
    id: str
    asset_id: str
    borrower_id: str
    borrower_name_snapshot: str
    borrower_contact_snapshot: str
    lent_at: datetime
    returned_at: Optional[datetime] = None
    notes: Optional[str] = None

    @computed_field
    @property
    def is_open(self) -> bool:
        return self.returned_at is None

    @computed_field
    @property
    def duration_days(self) -> Optional[int]:
        """Whole days on loan, rounded up. None while the loan is open."""
        if self.returned_at is None:
            return None
        elapsed = as_utc(self.returned_at) - as_utc(self.lent_at)
        return math.ceil(elapsed.total_seconds() / 86400)

class LendingResult(BaseModel):
    asset: Asset
    record: LendingRecord


class DateRange(BaseModel):
    """Inclusive bounds on lent_at. Naive datetimes are read as UTC."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.start and self.end and as_utc(self.start) > as_utc(self.end):
            raise ValueError("start must not be after end")
        return self


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

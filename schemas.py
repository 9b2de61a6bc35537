from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fx_rates import normalize_currency_code
from models import FrequencyKind


class CatalogEntry(BaseModel):
    """One recurring transaction as the engine sees it.

    ``position`` is the row's index in the catalog when it was loaded and
    is the tiebreak when sorting by frequency.
    """

    model_config = ConfigDict(frozen=True)

    position: int = Field(default=0, ge=0)
    description: str = Field(..., min_length=1, max_length=200)
    currency_code: str = Field(..., min_length=1, max_length=3)
    amount: Decimal
    frequency: str = Field(..., min_length=1, max_length=40)
    start_date: date
    account: str = Field(default="", max_length=60)
    expiry_date: Optional[date] = None

    @field_validator("currency_code", mode="before")
    @classmethod
    def _upper_code(cls, value: object) -> object:
        if isinstance(value, str):
            return normalize_currency_code(value)
        return value

    @field_validator("frequency", "description", "account", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def kind(self) -> FrequencyKind:
        return FrequencyKind.parse(self.frequency)

    def is_active_on(self, on_date: date) -> bool:
        return self.expiry_date is None or on_date <= self.expiry_date


@dataclass(frozen=True)
class DailyResult:
    date: date
    total: Decimal
    comment: str


class DailyResultOut(BaseModel):
    date: date
    total: Decimal
    formatted_total: str
    comment: str


class StoredResultOut(BaseModel):
    date: date
    total: Optional[Decimal]
    comment: Optional[str]


class PeriodIn(BaseModel):
    period: Literal["this_month", "next_month", "last_month", "custom"] = "this_month"
    start: Optional[date] = None
    end: Optional[date] = None


class ImportKind(str, Enum):
    catalog = "catalog"
    rates = "rates"
    dates = "dates"
    ranks = "ranks"


class ImportResultOut(BaseModel):
    kind: ImportKind
    rows: int

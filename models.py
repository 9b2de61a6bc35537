from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class FrequencyKind(str, Enum):
    once = "Once"
    weekly = "Weekly"
    biweekly = "Biweekly"
    monthly = "Monthly"
    biweekly_after_15 = "Biweekly after 15"
    bimonthly = "Bimonthly"
    quarterly = "Quarterly"
    triannual = "Triannual"
    semiannual = "Semiannual"
    annual = "Annual"
    unrecognized = "Unrecognized"

    @classmethod
    def parse(cls, value: Union["FrequencyKind", str, None]) -> "FrequencyKind":
        """Map a stored frequency label onto its kind.

        Labels are matched exactly after trimming whitespace. Anything else
        becomes ``unrecognized``.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip())
        except ValueError:
            return cls.unrecognized


def frequency_label(value: Union[FrequencyKind, str]) -> str:
    if isinstance(value, FrequencyKind):
        return value.value
    return str(value).strip()


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class RecurringTransaction(Base, TimestampMixin):
    __tablename__ = "recurring_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    # Raw label, so catalog rows with unknown frequencies survive a re-sort.
    frequency: Mapped[str] = mapped_column(String(40), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    account: Mapped[str] = mapped_column(String(60), nullable=False, default="")
    expiry_date: Mapped[Optional[date]] = mapped_column(Date)

    __table_args__ = (Index("ix_recurring_transactions_position", "position"),)


class CurrencyRate(Base, TimestampMixin):
    __tablename__ = "currency_rates"
    __table_args__ = (
        UniqueConstraint("currency_code", name="uq_currency_rate_code"),
        CheckConstraint("rate_micros >= 0", name="ck_currency_rate_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    rate_micros: Mapped[int] = mapped_column(Integer, nullable=False)


class BudgetDate(Base, TimestampMixin):
    __tablename__ = "budget_dates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    total_cents: Mapped[Optional[int]] = mapped_column(Integer)
    comment: Mapped[Optional[str]] = mapped_column(Text)
    computed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (Index("ix_budget_dates_position", "position"),)


class FrequencyRank(Base, TimestampMixin):
    __tablename__ = "frequency_ranks"
    __table_args__ = (UniqueConstraint("frequency", name="uq_frequency_rank_label"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    frequency: Mapped[str] = mapped_column(String(40), nullable=False)

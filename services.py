from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional, Protocol, Sequence, Union

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from config import get_settings
from csv_utils import (
    parse_catalog_csv,
    parse_dates_csv,
    parse_rank_csv,
    parse_rates_csv,
)
from formatting import format_currency, from_cents, to_cents
from fx_rates import RateTable
from models import (
    BudgetDate,
    CurrencyRate,
    FrequencyKind,
    FrequencyRank,
    RecurringTransaction,
    frequency_label,
)
from recurrence import matches
from schemas import CatalogEntry, DailyResult

logger = logging.getLogger(__name__)

DEFAULT_MARKER_ACCOUNTS = frozenset({"RBC", "CIBC"})
DEFAULT_MARKER = "**"


class UnrankedFrequencyError(ValueError):
    def __init__(self, labels: Sequence[str]) -> None:
        self.labels = list(labels)
        super().__init__(
            "Frequencies missing from rank list: " + ", ".join(self.labels)
        )


class MalformedRowError(ValueError):
    pass


def _comment_line(entry: CatalogEntry, marker: str) -> str:
    return f"{entry.description}{marker}, {format_currency(entry.amount)} {entry.currency_code}"


def aggregate(
    target_dates: Sequence[date],
    transactions: Sequence[CatalogEntry],
    rates: RateTable,
    *,
    marker_accounts: Iterable[str] = DEFAULT_MARKER_ACCOUNTS,
    marker: str = DEFAULT_MARKER,
) -> list[DailyResult]:
    """Total the catalog's occurrences on each target date.

    One result per target date, in input order. A transaction counts on a
    date when it has not expired and its frequency rule matches; its amount
    is converted with ``rates`` and a breakdown line is added to the
    comment. A currency missing from ``rates`` raises ``MissingRateError``.
    """
    marked = frozenset(marker_accounts)
    unknown = sorted(
        {entry.frequency for entry in transactions if entry.kind == FrequencyKind.unrecognized}
    )
    for label in unknown:
        logger.warning(f"aggregate: unrecognized_frequency={label!r} never matches")

    results: list[DailyResult] = []
    for target in target_dates:
        total = Decimal("0")
        lines: list[str] = []
        for entry in transactions:
            if not entry.is_active_on(target):
                continue
            if not matches(entry.kind, target, entry.start_date):
                continue
            total += rates.convert(entry.amount, entry.currency_code)
            lines.append(_comment_line(entry, marker if entry.account in marked else ""))
        results.append(DailyResult(date=target, total=total, comment="\n".join(lines)))
    return results


def rank_lookup(frequency_rank: Sequence[Union[FrequencyKind, str]]) -> dict[str, int]:
    lookup: dict[str, int] = {}
    for index, value in enumerate(frequency_rank):
        label = frequency_label(value)
        if label in lookup:
            raise ValueError(f"Frequency listed twice in rank list: {label}")
        lookup[label] = index
    return lookup


def sort_catalog(
    catalog: Sequence[CatalogEntry],
    frequency_rank: Sequence[Union[FrequencyKind, str]],
) -> list[CatalogEntry]:
    """Order the catalog by frequency rank, then by original position."""
    lookup = rank_lookup(frequency_rank)
    unranked = sorted({e.frequency for e in catalog if e.frequency not in lookup})
    if unranked:
        raise UnrankedFrequencyError(unranked)
    return sorted(catalog, key=lambda e: (lookup[e.frequency], e.position))


class BudgetSource(Protocol):
    def get_currency_rates(self) -> RateTable: ...

    def get_target_dates(self) -> list[date]: ...

    def get_transaction_catalog(self) -> list[CatalogEntry]: ...

    def get_frequency_rank_list(self) -> list[str]: ...


class BudgetSink(Protocol):
    def write_daily_result(self, row_index: int, total: Decimal, comment: str) -> None: ...

    def write_sorted_catalog(self, catalog: Sequence[CatalogEntry]) -> None: ...


class BudgetStore:
    """SQLAlchemy-backed source and sink. Callers own the transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._dates: Optional[list[BudgetDate]] = None

    def get_currency_rates(self) -> RateTable:
        rows = self.session.scalars(select(CurrencyRate)).all()
        return RateTable(
            {row.currency_code: RateTable.micros_to_rate(row.rate_micros) for row in rows}
        )

    def _date_rows(self) -> list[BudgetDate]:
        stmt = select(BudgetDate).order_by(BudgetDate.position, BudgetDate.id)
        return list(self.session.scalars(stmt).all())

    def get_target_dates(self) -> list[date]:
        self._dates = self._date_rows()
        return [row.date for row in self._dates]

    def get_transaction_catalog(self) -> list[CatalogEntry]:
        stmt = select(RecurringTransaction).order_by(
            RecurringTransaction.position, RecurringTransaction.id
        )
        return [
            CatalogEntry(
                position=index,
                description=row.description,
                currency_code=row.currency_code,
                amount=from_cents(row.amount_cents),
                frequency=row.frequency,
                start_date=row.start_date,
                account=row.account or "",
                expiry_date=row.expiry_date,
            )
            for index, row in enumerate(self.session.scalars(stmt))
        ]

    def get_frequency_rank_list(self) -> list[str]:
        stmt = select(FrequencyRank.frequency).order_by(
            FrequencyRank.position, FrequencyRank.id
        )
        return list(self.session.scalars(stmt).all())

    def get_daily_results(self) -> list[BudgetDate]:
        return self._date_rows()

    def write_daily_result(self, row_index: int, total: Decimal, comment: str) -> None:
        if self._dates is None:
            self._dates = self._date_rows()
        rows = self._dates
        if not 0 <= row_index < len(rows):
            raise IndexError(f"No budget date at row {row_index}")
        row = rows[row_index]
        row.total_cents = to_cents(total)
        row.comment = comment
        row.computed_at = datetime.utcnow()
        self.session.flush()

    def write_sorted_catalog(self, catalog: Sequence[CatalogEntry]) -> None:
        self.session.execute(delete(RecurringTransaction))
        for index, entry in enumerate(catalog):
            self.session.add(
                RecurringTransaction(
                    position=index,
                    description=entry.description,
                    currency_code=entry.currency_code,
                    amount_cents=to_cents(entry.amount),
                    frequency=entry.frequency,
                    start_date=entry.start_date,
                    account=entry.account,
                    expiry_date=entry.expiry_date,
                )
            )
        self.session.flush()

    def replace_rates(self, rates: dict[str, Decimal]) -> None:
        self.session.execute(delete(CurrencyRate))
        for code, rate in rates.items():
            self.session.add(
                CurrencyRate(currency_code=code, rate_micros=RateTable.rate_to_micros(rate))
            )
        self.session.flush()

    def replace_target_dates(self, dates: Sequence[date]) -> None:
        self._dates = None
        self.session.execute(delete(BudgetDate))
        for index, value in enumerate(dates):
            self.session.add(BudgetDate(position=index, date=value))
        self.session.flush()

    def replace_frequency_ranks(self, labels: Sequence[str]) -> None:
        self.session.execute(delete(FrequencyRank))
        for index, label in enumerate(labels):
            self.session.add(FrequencyRank(position=index, frequency=label))
        self.session.flush()


class BudgetService:
    def __init__(
        self,
        source: BudgetSource,
        sink: BudgetSink,
        *,
        marker_accounts: Optional[Iterable[str]] = None,
        marker: Optional[str] = None,
        notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        settings = get_settings()
        self.source = source
        self.sink = sink
        self.marker_accounts = frozenset(
            settings.marker_accounts if marker_accounts is None else marker_accounts
        )
        self.marker = settings.marker if marker is None else marker
        self.notify = notify

    def _progress(self, status: str) -> None:
        logger.info(f"budget_update: status={status}")
        if self.notify is not None:
            self.notify(status)

    def sort_catalog(self) -> list[CatalogEntry]:
        catalog = self.source.get_transaction_catalog()
        ranked = sort_catalog(catalog, self.source.get_frequency_rank_list())
        self.sink.write_sorted_catalog(ranked)
        logger.info(f"sort_catalog: entries={len(ranked)}")
        return ranked

    def update_budget(self) -> list[DailyResult]:
        self._progress("starting")
        rates = self.source.get_currency_rates()
        target_dates = self.source.get_target_dates()
        catalog = self.sort_catalog()
        results = aggregate(
            target_dates,
            catalog,
            rates,
            marker_accounts=self.marker_accounts,
            marker=self.marker,
        )
        for row_index, result in enumerate(results):
            self.sink.write_daily_result(row_index, result.total, result.comment)
        logger.info(
            f"budget_update: dates={len(results)} transactions={len(catalog)}"
        )
        self._progress("complete")
        return results


class CatalogImportService:
    """Replace stored budget inputs from CSV, all rows or none."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.store = BudgetStore(session)

    @staticmethod
    def _reject(kind: str, errors: list[str]) -> None:
        if errors:
            logger.warning(f"import_rejected: kind={kind} errors={len(errors)}")
            raise MalformedRowError("; ".join(errors))

    def replace_catalog(self, content: str) -> int:
        rows, errors = parse_catalog_csv(content)
        self._reject("catalog", errors)
        self.store.write_sorted_catalog(rows)
        return len(rows)

    def replace_rates(self, content: str) -> int:
        rates, errors = parse_rates_csv(content)
        self._reject("rates", errors)
        self.store.replace_rates(rates)
        return len(rates)

    def replace_dates(self, content: str) -> int:
        dates, errors = parse_dates_csv(content)
        self._reject("dates", errors)
        self.store.replace_target_dates(dates)
        return len(dates)

    def replace_ranks(self, content: str) -> int:
        labels, errors = parse_rank_csv(content)
        self._reject("ranks", errors)
        self.store.replace_frequency_ranks(labels)
        return len(labels)

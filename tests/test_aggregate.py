import logging
from datetime import date
from decimal import Decimal

import pytest

from fx_rates import MissingRateError, RateTable
from schemas import CatalogEntry
from services import aggregate


def _entry(position: int, **overrides) -> CatalogEntry:
    values = {
        "position": position,
        "description": "Rent",
        "currency_code": "CAD",
        "amount": Decimal("-1500.00"),
        "frequency": "Monthly",
        "start_date": date(2024, 1, 1),
        "account": "",
        "expiry_date": None,
    }
    values.update(overrides)
    return CatalogEntry(**values)


RATES = RateTable({"CAD": 1, "USD": Decimal("1.35")})


def test_aggregate_sums_converted_amounts_per_date():
    catalog = [
        _entry(0),
        _entry(1, description="Salary", amount=Decimal("2000"), frequency="Biweekly",
               start_date=date(2024, 1, 5)),
        _entry(2, description="Hosting", currency_code="USD", amount=Decimal("-20"),
               start_date=date(2024, 1, 1)),
    ]
    results = aggregate([date(2024, 2, 1), date(2024, 2, 2)], catalog, RATES)

    assert [r.date for r in results] == [date(2024, 2, 1), date(2024, 2, 2)]
    assert results[0].total == Decimal("-1527.00")
    assert results[0].comment == "Rent, ($1,500.00) CAD\nHosting, ($20.00) USD"
    assert results[1].total == Decimal("2000")
    assert results[1].comment == "Salary, $2,000.00 CAD"


def test_aggregate_marks_flagged_accounts():
    catalog = [
        _entry(0, account="RBC"),
        _entry(1, description="Phone", amount=Decimal("-80"), account="CIBC"),
        _entry(2, description="Gym", amount=Decimal("-45"), account="TD"),
    ]
    [result] = aggregate([date(2024, 3, 1)], catalog, RATES)
    assert result.comment.splitlines() == [
        "Rent**, ($1,500.00) CAD",
        "Phone**, ($80.00) CAD",
        "Gym, ($45.00) CAD",
    ]


def test_aggregate_uses_custom_marker_settings():
    catalog = [_entry(0, account="TD")]
    [result] = aggregate(
        [date(2024, 3, 1)], catalog, RATES, marker_accounts={"TD"}, marker=" (TD)"
    )
    assert result.comment == "Rent (TD), ($1,500.00) CAD"


def test_expiry_date_is_inclusive():
    entry = _entry(0, frequency="Weekly", expiry_date=date(2024, 1, 15))
    results = aggregate([date(2024, 1, 15), date(2024, 1, 22)], [entry], RATES)
    assert entry.is_active_on(date(2024, 1, 15))
    assert not entry.is_active_on(date(2024, 1, 16))
    assert results[0].total == Decimal("-1500.00")
    assert results[1].total == 0
    assert results[1].comment == ""


def test_missing_rate_propagates():
    catalog = [_entry(0, currency_code="EUR")]
    with pytest.raises(MissingRateError):
        aggregate([date(2024, 2, 1)], catalog, RATES)


def test_missing_rate_only_matters_when_transaction_occurs():
    catalog = [_entry(0, currency_code="EUR", start_date=date(2024, 1, 20))]
    [result] = aggregate([date(2024, 2, 1)], catalog, RATES)
    assert result.total == 0


def test_unrecognized_frequency_is_logged_and_skipped(caplog):
    catalog = [_entry(0, frequency="Fortnightly"), _entry(1)]
    with caplog.at_level(logging.WARNING, logger="services"):
        [result] = aggregate([date(2024, 2, 1)], catalog, RATES)
    assert result.comment == "Rent, ($1,500.00) CAD"
    assert "Fortnightly" in caplog.text


def test_aggregate_is_repeatable():
    catalog = [
        _entry(0),
        _entry(1, frequency="Quarterly", start_date=date(2024, 3, 15), amount=Decimal("99.99")),
    ]
    dates = [date(2024, 6, 1), date(2024, 6, 15), date(2024, 9, 15)]
    first = aggregate(dates, catalog, RATES)
    second = aggregate(dates, catalog, RATES)
    assert first == second
    assert [r.total for r in first] == [
        Decimal("-1500.00"),
        Decimal("99.99"),
        Decimal("99.99"),
    ]

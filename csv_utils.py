import csv
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Optional, Sequence

from formatting import format_currency, from_cents, to_cents
from fx_rates import RateTable, normalize_currency_code
from schemas import CatalogEntry, DailyResult

CATALOG_COLUMNS = [
    "Start Date",
    "Description",
    "Currency",
    "Amount",
    "Frequency",
    "Account",
    "Expiry",
]


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    if value.startswith(("=", "+", "-", "@", "\t", "\r")):
        return "\t" + value

    for pattern in (r"^cmd\s*", r"^powershell\s*", r"^http[s]?://"):
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def parse_date(value: str) -> date:
    value = value.strip()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%d.%m.%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date '{value}'")


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    if not value or not value.strip():
        return None
    return parse_date(value)


def parse_amount(value: str) -> Decimal:
    """Parse a signed amount such as ``-12.50``, ``$1,234.50`` or ``($5.00)``."""
    clean = value.strip().replace("$", "").replace(" ", "")
    negative = clean.startswith("(") and clean.endswith(")")
    if negative:
        clean = clean[1:-1]
    clean = clean.replace(",", "")
    if not clean:
        raise ValueError("Missing amount")
    try:
        amount = Decimal(clean)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount '{value.strip()}'") from exc
    return -amount if negative else amount


def _whole_cents(amount: Decimal) -> Decimal:
    # Amounts are stored as integer cents.
    if from_cents(to_cents(amount)) != amount:
        raise ValueError(f"Amount {amount} has a fraction of a cent")
    return amount


def _required(raw: dict, column: str) -> str:
    value = (raw.get(column) or "").strip()
    if not value:
        raise ValueError(f"Missing {column}")
    return value


def parse_catalog_csv(content: str) -> tuple[list[CatalogEntry], list[str]]:
    reader = csv.DictReader(StringIO(content))
    rows: list[CatalogEntry] = []
    errors: list[str] = []
    for idx, raw in enumerate(reader, start=1):
        # Rows without a start date are blank filler below the catalog.
        if not (raw.get("Start Date") or "").strip():
            continue
        try:
            rows.append(
                CatalogEntry(
                    position=len(rows),
                    start_date=parse_date(raw["Start Date"]),
                    description=_required(raw, "Description"),
                    currency_code=_required(raw, "Currency"),
                    amount=_whole_cents(parse_amount(_required(raw, "Amount"))),
                    frequency=_required(raw, "Frequency"),
                    account=(raw.get("Account") or "").strip(),
                    expiry_date=parse_optional_date(raw.get("Expiry")),
                )
            )
        except Exception as exc:
            errors.append(f"Row {idx}: {exc}")
    return rows, errors


def parse_rates_csv(content: str) -> tuple[dict[str, Decimal], list[str]]:
    reader = csv.DictReader(StringIO(content))
    rates: dict[str, Decimal] = {}
    errors: list[str] = []
    for idx, raw in enumerate(reader, start=1):
        code = normalize_currency_code(raw.get("Currency") or "")
        if not code:
            continue
        try:
            if code in rates:
                raise ValueError(f"Duplicate currency {code}")
            rate = parse_amount(_required(raw, "Rate"))
            if rate < 0:
                raise ValueError("Rate must not be negative")
            if RateTable.micros_to_rate(RateTable.rate_to_micros(rate)) != rate:
                raise ValueError(f"Rate {rate} has more than six decimal places")
            rates[code] = rate
        except Exception as exc:
            errors.append(f"Row {idx}: {exc}")
    return rates, errors


def parse_dates_csv(content: str) -> tuple[list[date], list[str]]:
    reader = csv.DictReader(StringIO(content))
    dates: list[date] = []
    errors: list[str] = []
    for idx, raw in enumerate(reader, start=1):
        value = (raw.get("Date") or "").strip()
        if not value:
            continue
        try:
            dates.append(parse_date(value))
        except Exception as exc:
            errors.append(f"Row {idx}: {exc}")
    return dates, errors


def parse_rank_csv(content: str) -> tuple[list[str], list[str]]:
    reader = csv.DictReader(StringIO(content))
    labels: list[str] = []
    errors: list[str] = []
    for idx, raw in enumerate(reader, start=1):
        label = (raw.get("Frequency") or "").strip()
        if not label:
            continue
        if label in labels:
            errors.append(f"Row {idx}: Duplicate frequency {label}")
            continue
        labels.append(label)
    return labels, errors


def export_catalog(entries: Sequence[CatalogEntry]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(CATALOG_COLUMNS)
    for entry in entries:
        writer.writerow(
            [
                entry.start_date.isoformat(),
                sanitize_csv_value(entry.description),
                entry.currency_code,
                f"{entry.amount:.2f}",
                entry.frequency,
                sanitize_csv_value(entry.account),
                entry.expiry_date.isoformat() if entry.expiry_date else "",
            ]
        )
    return output.getvalue()


def export_results(results: Sequence[DailyResult]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Date", "Total", "Comment"])
    for result in results:
        writer.writerow(
            [
                result.date.isoformat(),
                format_currency(result.total),
                sanitize_csv_value(result.comment),
            ]
        )
    return output.getvalue()

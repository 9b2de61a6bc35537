from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Iterator, Mapping, Union

Number = Union[Decimal, int, float, str]


class MissingRateError(KeyError):
    def __init__(self, currency_code: str) -> None:
        super().__init__(currency_code)
        self.currency_code = currency_code

    def __str__(self) -> str:
        return f"No currency rate for {self.currency_code!r}"


def normalize_currency_code(code: str) -> str:
    return (code or "").strip().upper()


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats keep their printed value, not the binary one.
    return Decimal(str(value))


class RateTable(Mapping[str, Decimal]):
    """Multipliers converting each currency into the reporting currency.

    Built once per run and read-only afterwards.
    """

    def __init__(self, rates: Mapping[str, Number]) -> None:
        self._rates = MappingProxyType(
            {normalize_currency_code(code): _to_decimal(rate) for code, rate in rates.items()}
        )

    def __getitem__(self, code: str) -> Decimal:
        return self.rate_for(code)

    def __iter__(self) -> Iterator[str]:
        return iter(self._rates)

    def __len__(self) -> int:
        return len(self._rates)

    def __repr__(self) -> str:
        return f"RateTable({dict(self._rates)!r})"

    def rate_for(self, code: str) -> Decimal:
        try:
            return self._rates[normalize_currency_code(code)]
        except KeyError:
            raise MissingRateError(code) from None

    def convert(self, amount: Number, code: str) -> Decimal:
        return _to_decimal(amount) * self.rate_for(code)

    @staticmethod
    def rate_to_micros(rate: Decimal) -> int:
        return int(
            (rate * Decimal("1000000")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        )

    @staticmethod
    def micros_to_rate(micros: int) -> Decimal:
        return Decimal(micros) / Decimal("1000000")

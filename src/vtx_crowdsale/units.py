from __future__ import annotations

from decimal import Decimal
from typing import Union

from .project_constants import TOKEN_DECIMALS

WEI_PER_ETHER = 10**18

Number = Union[int, str, Decimal]


def ether(n: Number) -> int:
    """Ether -> wei. Pass fractional amounts as str or Decimal, never float."""
    if isinstance(n, float):
        raise TypeError("ether() takes int, str or Decimal, not float")
    wei = Decimal(n) * WEI_PER_ETHER
    if wei != wei.to_integral_value():
        raise ValueError(f"{n} ether is not a whole number of wei")
    return int(wei)


def to_tokens(raw_amount: int, decimals: int = TOKEN_DECIMALS) -> float:
    return round(raw_amount / (10**decimals), 4)


class _Duration:
    def seconds(self, val: int) -> int:
        return val

    def minutes(self, val: int) -> int:
        return val * self.seconds(60)

    def hours(self, val: int) -> int:
        return val * self.minutes(60)

    def days(self, val: int) -> int:
        return val * self.hours(24)

    def weeks(self, val: int) -> int:
        return val * self.days(7)

    def years(self, val: int) -> int:
        return val * self.days(365)


duration = _Duration()

"""
Money utilities using py-moneyed and Babel.

Aggregates store integer minor units; presentation needs major units with
the currency's precision and locale-aware formatting.
"""

from decimal import Decimal
from typing import Any

from babel import Locale
from babel.core import UnknownLocaleError
from babel.numbers import format_currency, get_currency_precision
from moneyed import Currency, Money, get_currency
from moneyed.classes import CurrencyDoesNotExist

from ledgerdash.settings import settings

DEFAULT_LOCALE = "en_US"


class MoneyHandler:
    """Central handler for minor-unit conversions and formatting."""

    def __init__(self, default_currency: str = "USD", default_locale: str = DEFAULT_LOCALE) -> None:
        self.default_currency = self._validate_currency(default_currency)
        self.default_locale = self._validate_locale(default_locale)

    def _validate_currency(self, currency_code: str) -> Currency:
        """Validate and return Currency object."""
        try:
            return get_currency(currency_code.upper())
        except CurrencyDoesNotExist:
            raise ValueError(f"Invalid currency code: {currency_code}")

    def _validate_locale(self, locale_code: str) -> str:
        """Validate locale code."""
        try:
            Locale.parse(locale_code)
            return locale_code
        except (UnknownLocaleError, ValueError):
            return DEFAULT_LOCALE

    def get_currency_precision(self, currency_code: str) -> int:
        """Get decimal precision for a currency."""
        return get_currency_precision(currency_code.upper())

    def money_from_minor_units(self, minor_units: int, currency: str | None = None) -> Money:
        """Create Money from minor units (e.g., cents)."""
        code = currency or self.default_currency.code
        validated_currency = self._validate_currency(code)
        precision = self.get_currency_precision(code)
        amount = Decimal(minor_units) / Decimal(10**precision)
        return Money(amount=amount, currency=validated_currency)

    def to_major_units(self, minor_units: int, currency: str | None = None) -> Decimal:
        """Minor units as a Decimal quantized to the currency precision."""
        money = self.money_from_minor_units(minor_units, currency)
        precision = self.get_currency_precision(money.currency.code)
        return money.amount.quantize(Decimal(1).scaleb(-precision))

    def format_money(self, money: Money, locale: str | None = None, **kwargs: Any) -> str:
        """Format Money object with locale-aware formatting."""
        validated_locale = self._validate_locale(locale or self.default_locale)
        try:
            return format_currency(
                number=money.amount, currency=money.currency.code, locale=validated_locale, **kwargs
            )
        except (TypeError, ValueError):
            return f"{money.currency.code} {money.amount}"

    def format_minor_units(self, minor_units: int, currency: str | None = None) -> str:
        """Locale-formatted display string for an amount in minor units."""
        return self.format_money(self.money_from_minor_units(minor_units, currency))


# Global instance for convenience
money_handler = MoneyHandler(
    default_currency=settings.revenue.default_currency,
    default_locale=settings.revenue.display_locale,
)


__all__ = [
    "MoneyHandler",
    "money_handler",
]

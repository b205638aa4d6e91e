"""Locale-aware money, number and percent formatting.

Thin wrappers over Babel's CLDR-backed number formatting. Amounts are
converted to ``Decimal`` and rounded half-up before they reach Babel, so
display rounding matches the rounding used for stored totals.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, TypedDict

from babel import Locale as BabelLocale
from babel.numbers import (
    NumberFormatError,
    format_compact_currency,
    format_currency as babel_format_currency,
    format_decimal as babel_format_decimal,
    format_percent as babel_format_percent,
    get_currency_name as babel_get_currency_name,
    get_currency_symbol as babel_get_currency_symbol,
    get_decimal_symbol,
    get_group_symbol,
    parse_decimal,
)

from src.core.i18n import SUPPORTED_LOCALES, Locale

CurrencyCode = Literal["USD", "EUR", "GBP", "MXN", "CAD", "AUD"]

SUPPORTED_CURRENCIES: tuple[CurrencyCode, ...] = ("USD", "EUR", "GBP", "MXN", "CAD", "AUD")

LOCALE_CURRENCY_MAP: dict[Locale, CurrencyCode] = {
    "en": "USD",
    "es": "MXN",
}

CENT = Decimal("0.01")

Amount = Decimal | int | float


class PriceWithTax(TypedDict):
    base: str
    tax: str
    total: str


def _check_locale(locale: str) -> Locale:
    if locale not in SUPPORTED_LOCALES:
        raise ValueError(f"Unsupported locale: {locale!r}")
    return locale  # type: ignore[return-value]


def _resolve_currency(locale: str, currency: str | None) -> str:
    code = currency or LOCALE_CURRENCY_MAP[_check_locale(locale)]
    if code not in SUPPORTED_CURRENCIES:
        raise ValueError(f"Unsupported currency: {code!r}")
    return code


def to_decimal(amount: Amount) -> Decimal:
    """Convert a numeric amount to Decimal without binary float artifacts."""
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(str(amount))
    return Decimal(amount)


def _quantize(amount: Amount, decimals: int) -> Decimal:
    return to_decimal(amount).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def _with_fraction_digits(pattern: str, decimals: int) -> str:
    """Rewrite the fraction part of a CLDR pattern to a fixed digit count."""
    fraction = "." + "0" * decimals if decimals > 0 else ""
    return re.sub(r"0(\.[0#]+)?(?=[^0#.,]|$)", "0" + fraction, pattern)


def _currency_pattern(locale: str, decimals: int) -> str:
    pattern = BabelLocale.parse(locale).currency_formats["standard"].pattern
    return _with_fraction_digits(pattern, decimals)


def format_currency(amount: Amount, locale: Locale = "en", currency: str | None = None) -> str:
    """Format an amount in major units as currency.

    Args:
        amount: Amount in major currency units, e.g. 1234.56.
        locale: Display locale.
        currency: ISO 4217 code; defaults to the locale's currency.

    Returns:
        str: e.g. "$1,234.56" for en/USD.

    Raises:
        ValueError: If the locale or currency is not supported.
    """
    code = _resolve_currency(locale, currency)
    return babel_format_currency(_quantize(amount, 2), code, locale=locale)


def format_cents(cents: int, locale: Locale = "en", currency: str | None = None) -> str:
    """Format an integer amount of cents, as stored on orders."""
    return format_currency(Decimal(cents) / 100, locale, currency)


def format_currency_whole(amount: Amount, locale: Locale = "en", currency: str | None = None) -> str:
    """Format currency rounded to whole units, e.g. "$1,235"."""
    return format_currency_with_decimals(amount, 0, locale, currency)


def format_currency_accounting(amount: Amount, locale: Locale = "en", currency: str | None = None) -> str:
    """Format currency in accounting style; negatives in parentheses where the locale uses them."""
    code = _resolve_currency(locale, currency)
    return babel_format_currency(_quantize(amount, 2), code, locale=locale, format_type="accounting")


def format_currency_with_decimals(
    amount: Amount,
    decimals: int,
    locale: Locale = "en",
    currency: str | None = None,
) -> str:
    """Format currency with a fixed number of fraction digits.

    Args:
        amount: Amount in major currency units.
        decimals: Fraction digits to show (0-20).
        locale: Display locale.
        currency: ISO 4217 code; defaults to the locale's currency.

    Returns:
        str: e.g. "$1,234.568" for 1234.5678 with three decimals.

    Raises:
        ValueError: If decimals is out of range or locale/currency unsupported.
    """
    if not 0 <= decimals <= 20:
        raise ValueError("decimals must be between 0 and 20")
    code = _resolve_currency(locale, currency)
    return babel_format_currency(
        _quantize(amount, decimals),
        code,
        format=_currency_pattern(locale, decimals),
        locale=locale,
        currency_digits=False,
    )


def format_currency_compact(amount: Amount, locale: Locale = "en", currency: str | None = None) -> str:
    """Format currency in short compact notation, e.g. "$1.2K", "$1.2M"."""
    code = _resolve_currency(locale, currency)
    return format_compact_currency(to_decimal(amount), code, locale=locale, fraction_digits=1)


def format_decimal(amount: Amount, locale: Locale = "en", decimals: int = 2) -> str:
    """Format a plain number with grouping and a fixed number of decimals."""
    _check_locale(locale)
    return babel_format_decimal(
        _quantize(amount, decimals),
        format=_with_fraction_digits("#,##0", decimals),
        locale=locale,
    )


def format_percent(value: Amount, locale: Locale = "en", decimals: int = 0) -> str:
    """Format a fraction as a percentage; 0.15 becomes "15%"."""
    _check_locale(locale)
    pattern = BabelLocale.parse(locale).percent_formats[None].pattern
    return babel_format_percent(
        _quantize(to_decimal(value) * 100, decimals) / 100,
        format=_with_fraction_digits(pattern, decimals),
        locale=locale,
    )


def format_number(amount: Amount, locale: Locale = "en") -> str:
    """Format a whole number with thousands separators."""
    return format_decimal(amount, locale, 0)


def format_price_range(
    min_price: Amount,
    max_price: Amount,
    locale: Locale = "en",
    currency: str | None = None,
) -> str:
    """Format a price range as "min - max"."""
    return f"{format_currency(min_price, locale, currency)} - {format_currency(max_price, locale, currency)}"


def get_currency_symbol(currency: str, locale: Locale = "en") -> str:
    """Return the display symbol of a currency in a locale, e.g. "€"."""
    code = _resolve_currency(locale, currency)
    return babel_get_currency_symbol(code, locale=locale)


def get_currency_name(currency: str, locale: Locale = "en") -> str:
    """Return the display name of a currency, e.g. "US Dollar"."""
    code = _resolve_currency(locale, currency)
    return babel_get_currency_name(code, locale=locale)


def parse_currency(text: str, locale: Locale = "en") -> Decimal:
    """Parse a formatted currency string back into an amount.

    Currency symbols, codes and spacing are ignored. An amount wrapped in
    parentheses (accounting notation) is negative.

    Args:
        text: Formatted amount, e.g. "$1,234.56" or "1.234,56 €".
        locale: Locale whose separators were used to format the amount.

    Returns:
        Decimal: Parsed amount.

    Raises:
        ValueError: If no number can be parsed.
    """
    _check_locale(locale)
    decimal_symbol = get_decimal_symbol(locale)
    group_symbol = get_group_symbol(locale)

    negative = "(" in text and ")" in text
    allowed = set("0123456789-") | {decimal_symbol, group_symbol}
    cleaned = "".join(ch for ch in text if ch in allowed)
    if not any(ch.isdigit() for ch in cleaned):
        raise ValueError(f"Cannot parse currency amount: {text!r}")

    try:
        value = parse_decimal(cleaned, locale=locale)
    except NumberFormatError as e:
        raise ValueError(f"Cannot parse currency amount: {text!r}") from e

    return -abs(value) if negative else value


def is_valid_price(value: object) -> bool:
    """Check that a value is a finite, non-negative number."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    if isinstance(value, float):
        return math.isfinite(value) and value >= 0
    if isinstance(value, Decimal):
        return value.is_finite() and value >= 0
    return value >= 0


def calculate_discount(original_price: Amount, discounted_price: Amount) -> Decimal:
    """Return the discount as a fraction in [0, 1].

    Invalid combinations (non-positive original, negative or higher
    discounted price) yield 0.
    """
    original = to_decimal(original_price)
    discounted = to_decimal(discounted_price)
    if original <= 0 or discounted < 0 or discounted > original:
        return Decimal(0)
    return (original - discounted) / original


def format_discount(original_price: Amount, discounted_price: Amount, locale: Locale = "en") -> str:
    """Format the discount between two prices as a whole percentage."""
    return format_percent(calculate_discount(original_price, discounted_price), locale, 0)


def calculate_tax(amount: Amount, tax_rate: Amount) -> Decimal:
    """Return the tax on an amount, rounded half-up to the cent."""
    return (to_decimal(amount) * to_decimal(tax_rate)).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_total_with_tax(amount: Amount, tax_rate: Amount) -> Decimal:
    """Return amount plus tax, rounded half-up to the cent."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP) + calculate_tax(amount, tax_rate)


def calculate_tax_cents(subtotal_cents: int, tax_rate: Amount) -> int:
    """Return the tax on an integer-cent subtotal, rounded half-up to a whole cent."""
    if subtotal_cents < 0:
        raise ValueError("subtotal_cents must not be negative")
    tax = (Decimal(subtotal_cents) * to_decimal(tax_rate)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(tax)


def format_price_with_tax(
    amount: Amount,
    tax_rate: Amount,
    locale: Locale = "en",
    currency: str | None = None,
) -> PriceWithTax:
    """Format base amount, tax and total for display."""
    return {
        "base": format_currency(amount, locale, currency),
        "tax": format_currency(calculate_tax(amount, tax_rate), locale, currency),
        "total": format_currency(calculate_total_with_tax(amount, tax_rate), locale, currency),
    }


def get_default_currency(locale: Locale) -> CurrencyCode:
    """Return the default currency for a locale: en is USD, es is MXN."""
    return LOCALE_CURRENCY_MAP[_check_locale(locale)]


"""Display formatting (currency, dates)."""

from __future__ import annotations

from hcregister.config import LocaleConfig, get_config


def format_currency(amount: float, locale: LocaleConfig | None = None) -> str:
    """Format an amount as e.g. ``Rs 1,234.56`` (negative: ``-Rs 1,234.56``)."""
    locale = locale or get_config().locale
    sign = "-" if amount < 0 else ""
    return f"{sign}{locale.currency_symbol} {abs(amount):,.2f}"

"""Currency preference and metric value formatting for the dashboard cards."""

from __future__ import annotations

from enum import Enum

from dashboard.state import CURRENCY_KEY, ClientStateStore


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    INR = "INR"


CURRENCY_SYMBOLS = {
    Currency.USD: "$",
    Currency.EUR: "€",
    Currency.INR: "₹",
}

PERCENT_METRICS = {"fillrate", "ontime"}


def get_currency(state: ClientStateStore) -> Currency:
    saved = state.get_item(CURRENCY_KEY)
    try:
        return Currency(saved)
    except ValueError:
        return Currency.USD


def set_currency(state: ClientStateStore, currency: Currency) -> None:
    state.set_item(CURRENCY_KEY, currency.value)


def format_currency(value: float, currency: Currency = Currency.USD) -> str:
    """Compact money format: $1.5M, €2.3K, ₹950."""
    abs_value = abs(value)
    if abs_value >= 1_000_000:
        formatted = f"{abs_value / 1_000_000:.1f}M"
    elif abs_value >= 1_000:
        formatted = f"{abs_value / 1_000:.1f}K"
    else:
        formatted = f"{abs_value:.0f}"
    sign = "-" if value < 0 else ""
    return f"{sign}{CURRENCY_SYMBOLS[currency]}{formatted}"


def format_metric_value(
    metric_id: str,
    value: float,
    unit: str = "units",
    currency: Currency = Currency.USD,
) -> str:
    """Render a metric card value the way the dashboard cards show it."""
    if metric_id in PERCENT_METRICS:
        return f"{value:.1f}%"
    if metric_id == "leadtime":
        return f"{value:.1f}d"
    if metric_id == "turns":
        return f"{value:.1f}x"

    if unit == "financial":
        return format_currency(value, currency)
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.0f}K"
    return f"{value:g}"

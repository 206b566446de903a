"""Exchange-rate snapshots and minor-unit money helpers."""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

import requests
from flask import current_app

from expensehub import db
from expensehub.errors import BusinessRuleViolation
from expensehub.models import ExchangeRateSnapshot
from expensehub.tenant import TenantScope

logger = logging.getLogger(__name__)

DEFAULT_EXCHANGE_API_URL = "https://api.exchangerate-api.com/v4/latest/{base}"


def format_minor(amount_minor: Optional[int]) -> str:
    """Render minor units for display: ``4500`` -> ``45.00``."""
    if amount_minor is None:
        return "0.00"
    value = (Decimal(int(amount_minor)) / 100).quantize(Decimal("0.01"))
    return f"{value:,.2f}"


def fetch_exchange_rates(base_currency: str) -> Dict[str, float]:
    """Fetch exchange rates for the given base currency; empty on failure."""
    url_template = current_app.config.get("EXCHANGE_API_URL") or DEFAULT_EXCHANGE_API_URL
    try:
        response = requests.get(url_template.format(base=base_currency.upper()), timeout=10)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Exchange rate lookup for %s failed: %s", base_currency, exc)
        return {}

    return payload.get("rates", {}) or {}


def refresh_snapshot(tenant: TenantScope) -> ExchangeRateSnapshot:
    company = tenant.get_company()
    rates = fetch_exchange_rates(company.base_currency)
    if not rates:
        raise BusinessRuleViolation("Exchange rates are unavailable right now")

    snapshot = tenant.exchange_rate_snapshots.create(
        base_currency=company.base_currency,
        rates={code.upper(): float(rate) for code, rate in rates.items()},
    )
    db.session.commit()
    logger.info("Captured %d exchange rates for company %s", len(rates), tenant.company_id)
    return snapshot


def latest_snapshot(tenant: TenantScope) -> Optional[ExchangeRateSnapshot]:
    return tenant.exchange_rate_snapshots.find_first(
        order_by=(ExchangeRateSnapshot.captured_at.desc(), ExchangeRateSnapshot.id.desc())
    )


def convert_minor(
    amount_minor: int,
    currency: str,
    snapshot: Optional[ExchangeRateSnapshot],
) -> Optional[int]:
    """Convert minor units into the snapshot's base currency.

    Rates are quoted as units of ``currency`` per one unit of the base, so the
    amount is divided by the rate. Returns None when the currency is unknown.
    """
    currency = (currency or "").upper()
    if snapshot is None:
        return None
    if currency == snapshot.base_currency.upper():
        return int(amount_minor)

    rate = (snapshot.rates or {}).get(currency)
    if not rate:
        return None
    converted = Decimal(int(amount_minor)) / Decimal(str(rate))
    return int(converted.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def total_in_base(expenses, base_currency: str, snapshot: Optional[ExchangeRateSnapshot]) -> Dict[str, object]:
    """Sum expenses in the base currency; amounts that cannot be converted are counted."""
    total = 0
    unconverted = 0
    for expense in expenses:
        if expense.currency.upper() == base_currency.upper():
            total += int(expense.amount_minor)
            continue
        converted = convert_minor(expense.amount_minor, expense.currency, snapshot)
        if converted is None:
            unconverted += 1
        else:
            total += converted
    return {"currency": base_currency, "total_minor": total, "unconverted": unconverted}

"""Exchange-rate snapshots and minor-unit helpers."""
from types import SimpleNamespace

import pytest
import requests

from expensehub.errors import BusinessRuleViolation
from expensehub.models import ExchangeRateSnapshot
from expensehub.services import currency_service
from expensehub.tenant import TenantScope

from .conftest import login


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


@pytest.fixture
def fake_rates(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse({"base": "USD", "rates": {"USD": 1, "eur": 0.8, "GBP": 0.5}})

    monkeypatch.setattr(currency_service.requests, "get", fake_get)
    return calls


def test_format_minor():
    assert currency_service.format_minor(4500) == "45.00"
    assert currency_service.format_minor(123456789) == "1,234,567.89"
    assert currency_service.format_minor(None) == "0.00"


def test_convert_minor_uses_snapshot_rates():
    snapshot = SimpleNamespace(base_currency="USD", rates={"EUR": 0.8, "JPY": 110.25})

    assert currency_service.convert_minor(4000, "eur", snapshot) == 5000
    assert currency_service.convert_minor(4500, "USD", snapshot) == 4500
    assert currency_service.convert_minor(11025, "JPY", snapshot) == 100
    assert currency_service.convert_minor(100, "CHF", snapshot) is None
    assert currency_service.convert_minor(100, "EUR", None) is None


def test_total_in_base_counts_unconverted():
    snapshot = SimpleNamespace(base_currency="USD", rates={"EUR": 0.8})
    expenses = [
        SimpleNamespace(amount_minor=1000, currency="USD"),
        SimpleNamespace(amount_minor=800, currency="EUR"),
        SimpleNamespace(amount_minor=500, currency="CHF"),
    ]

    total = currency_service.total_in_base(expenses, "USD", snapshot)

    assert total == {"currency": "USD", "total_minor": 2000, "unconverted": 1}


def test_fetch_failure_returns_empty(app, monkeypatch):
    def broken_get(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(currency_service.requests, "get", broken_get)

    with app.app_context():
        assert currency_service.fetch_exchange_rates("USD") == {}


def test_refresh_snapshot_stores_rates(app, acme, fake_rates):
    with app.app_context():
        tenant = TenantScope(acme.company_id, acme.admin_id)

        snapshot = currency_service.refresh_snapshot(tenant)

        assert snapshot.base_currency == "USD"
        assert snapshot.rates == {"USD": 1.0, "EUR": 0.8, "GBP": 0.5}
        assert currency_service.latest_snapshot(tenant).id == snapshot.id
    assert fake_rates == ["https://api.exchangerate-api.com/v4/latest/USD"]


def test_refresh_fails_when_rates_are_unavailable(app, acme, monkeypatch):
    monkeypatch.setattr(currency_service.requests, "get", lambda url, timeout: FakeResponse({}, 503))

    with app.app_context():
        with pytest.raises(BusinessRuleViolation):
            currency_service.refresh_snapshot(TenantScope(acme.company_id, acme.admin_id))
        assert ExchangeRateSnapshot.query.count() == 0


def test_exchange_rate_endpoints(app, acme, globex, fake_rates):
    admin = login(app, acme.admin_email)

    assert admin.get("/api/exchange-rates").get_json()["data"] is None
    refreshed = admin.post("/api/exchange-rates/refresh")
    latest = login(app, acme.employee_email).get("/api/exchange-rates")

    assert refreshed.status_code == 201
    assert latest.get_json()["data"]["rates"]["EUR"] == 0.8
    assert login(app, globex.admin_email).get("/api/exchange-rates").get_json()["data"] is None
    assert login(app, acme.employee_email).post("/api/exchange-rates/refresh").status_code == 403

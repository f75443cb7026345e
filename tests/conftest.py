"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from fastapi.testclient import TestClient
from payments_gateway.api.main import create_app
from payments_gateway.api.dependencies import get_now
from payments_gateway.domain.models import Transaction


# Fixed reference instant: mid-month so month arithmetic is unambiguous
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_transaction(
    amount,
    created_at: datetime,
    eligible: bool = True,
    transaction_id: str = "tx",
) -> Transaction:
    """Build a Transaction with sensible defaults for tests"""
    return Transaction(
        transaction_id=transaction_id,
        created_at=created_at,
        amount=Decimal(str(amount)) if amount is not None else None,
        currency="EUR",
        is_eligible_for_cashback=eligible,
        merchant_name="Test Merchant",
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client with a frozen clock"""
    app = create_app()
    app.dependency_overrides[get_now] = lambda: NOW
    return TestClient(app)


@pytest.fixture
def six_month_history() -> list[Transaction]:
    """€500 eligible spend in each of the six complete months before NOW (€10 at 2%)"""
    months = [(2024, 12), (2025, 1), (2025, 2), (2025, 3), (2025, 4), (2025, 5)]
    return [
        make_transaction(500, datetime(year, month, 10, tzinfo=timezone.utc), transaction_id=f"tx_{year}_{month}")
        for year, month in months
    ]


@pytest.fixture
def gnosis_pay_transactions() -> list[dict]:
    """Raw Gnosis Pay transaction payloads as returned by /api/v1/cards/transactions"""
    currency = {"symbol": "€", "code": "978", "decimals": 2, "name": "Euro"}
    return [
        {
            "threadId": "thread_1",
            "createdAt": "2025-06-02T09:30:00Z",
            "isPending": False,
            "impactsCashback": True,
            "mcc": "5411",
            "merchant": {"name": "Supermarket", "city": "Berlin"},
            "billingAmount": "5000",
            "billingCurrency": currency,
            "transactionAmount": "5000",
            "transactionCurrency": currency,
            "transactionType": "00",
            "cardToken": "card_1234",
            "kind": "Payment",
            "status": "Approved",
        },
        {
            "threadId": "thread_2",
            "createdAt": "2025-06-03T18:00:00Z",
            "isPending": False,
            "impactsCashback": True,
            "mcc": "5812",
            "merchant": {"name": "Restaurant"},
            "billingAmount": "3000",
            "billingCurrency": currency,
            "transactionAmount": "3000",
            "transactionCurrency": currency,
            "transactionType": "00",
            "cardToken": "card_1234",
            "kind": "Payment",
            "status": "Approved",
        },
        {
            "threadId": "thread_3",
            "createdAt": "2025-06-04T11:00:00Z",
            "isPending": False,
            "impactsCashback": None,
            "mcc": "4829",
            "merchant": {"name": "Exchange"},
            "billingAmount": "100000",
            "billingCurrency": currency,
            "transactionAmount": "100000",
            "transactionCurrency": currency,
            "transactionType": "00",
            "cardToken": "card_1234",
            "kind": "Payment",
            "status": "Approved",
        },
        {
            "threadId": "thread_4",
            "createdAt": "not-a-date",
            "isPending": False,
            "impactsCashback": True,
            "mcc": "5411",
            "merchant": {"name": "Broken"},
            "billingAmount": "1000",
            "billingCurrency": currency,
            "transactionAmount": "1000",
            "transactionCurrency": currency,
            "transactionType": "00",
            "cardToken": "card_1234",
            "kind": "Payment",
            "status": "Approved",
        },
    ]

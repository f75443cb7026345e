"""Integration tests for API endpoints"""

import pytest
from unittest.mock import AsyncMock, patch
from decimal import Decimal
from fastapi.testclient import TestClient
from payments_gateway.api.dependencies import get_cashback_schedule
from payments_gateway.domain.exceptions import GnosisPayAPIError, UnauthorizedError
from payments_gateway.domain.models import RewardsInfo, Transaction
from payments_gateway.domain.tiers import CashbackSchedule
from payments_gateway.infrastructure.clients.mappers import map_transactions

AUTH = {"Authorization": "Bearer session-token"}


@pytest.fixture
def mock_transactions(gnosis_pay_transactions) -> list[Transaction]:
    """Mapped Gnosis Pay history: €50 + €30 eligible, €1000 ineligible, one malformed"""
    return map_transactions(gnosis_pay_transactions)


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["tier_count"] == 5
    assert data["og_bonus_rate"] == 1


def test_health_reports_overridden_schedule(client: TestClient):
    client.app.dependency_overrides[get_cashback_schedule] = lambda: CashbackSchedule(og_bonus_rate=2)

    data = client.get("/health").json()

    assert data["og_bonus_rate"] == 2


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "http_request_duration_seconds" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_list_tiers(client: TestClient):
    response = client.get("/v1/tiers")

    assert response.status_code == 200
    data = response.json()
    assert [t["label"] for t in data["tiers"]] == ["No Cashback", "Bronze", "Silver", "Gold", "Platinum"]
    assert data["tiers"][-1]["max_gno"] is None
    assert data["og_bonus_rate"] == 1


def test_resolve_tier_endpoint(client: TestClient):
    response = client.get("/v1/tiers/resolve", params={"gno_balance": 5})

    assert response.status_code == 200
    data = response.json()
    assert data["tier"]["name"] == "TIER_1"
    assert data["tier"]["label"] == "Bronze"
    assert data["effective_rate"] == 1
    assert data["distance"]["gno_needed"] == 5
    assert data["distance"]["next_tier"]["name"] == "TIER_2"
    assert data["progress"]["is_max_tier"] is False


def test_resolve_tier_endpoint_top_tier_og(client: TestClient):
    response = client.get("/v1/tiers/resolve", params={"gno_balance": 100, "is_og_holder": True})

    assert response.status_code == 200
    data = response.json()
    assert data["tier"]["label"] == "Platinum"
    assert data["effective_rate"] == 5
    assert data["distance"] == {"gno_needed": None, "next_tier": None}
    assert data["progress"]["is_max_tier"] is True


def test_resolve_tier_endpoint_rejects_negative_balance(client: TestClient):
    response = client.get("/v1/tiers/resolve", params={"gno_balance": -1})
    assert response.status_code == 422


def test_cashback_stats_endpoint(client: TestClient):
    response = client.post(
        "/v1/cashback/stats",
        json={
            "cashback_rate": 2,
            "transactions": [
                {"amount": "50", "created_at": "2025-06-02T10:00:00Z", "is_eligible_for_cashback": True},
                {"amount": "30", "created_at": "2025-06-03T10:00:00Z", "is_eligible_for_cashback": True},
                {"amount": "1000", "created_at": "2025-06-04T10:00:00Z", "is_eligible_for_cashback": False},
                {"amount": None, "created_at": "2025-06-05T10:00:00Z", "is_eligible_for_cashback": True},
            ],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["earned_this_month"] == 1.6
    assert data["eligible_transaction_count"] == 2
    assert data["ineligible_transaction_count"] == 1
    assert data["skipped_transaction_count"] == 1
    assert data["monthly_earnings"][-1]["month"] == "2025-06"


def test_cashback_stats_endpoint_empty(client: TestClient):
    response = client.post("/v1/cashback/stats", json={"cashback_rate": 3, "transactions": []})

    assert response.status_code == 200
    data = response.json()
    assert data["total_earned"] == 0
    assert data["projected_yearly_cashback"] == 0


def test_cashback_stats_endpoint_explicit_now(client: TestClient):
    response = client.post(
        "/v1/cashback/stats",
        json={
            "cashback_rate": 2,
            "now": "2025-07-10T00:00:00Z",
            "transactions": [
                {"amount": "50", "created_at": "2025-06-02T10:00:00Z", "is_eligible_for_cashback": True},
            ],
        },
    )

    data = response.json()
    assert data["earned_this_month"] == 0
    assert data["earned_last_month"] == 1.0


def test_cashback_stats_endpoint_rejects_negative_rate(client: TestClient):
    response = client.post("/v1/cashback/stats", json={"cashback_rate": -1, "transactions": []})
    assert response.status_code == 422


def test_cashback_summary_endpoint(client: TestClient):
    response = client.post(
        "/v1/cashback/summary",
        json={
            "cashback_rate": 1,
            "transactions": [
                {"amount": "40", "created_at": "2025-05-02T10:00:00Z", "is_eligible_for_cashback": True},
                {"amount": "60", "created_at": "2025-06-02T10:00:00Z", "is_eligible_for_cashback": True},
                {"amount": "25", "created_at": "2025-06-03T10:00:00Z", "is_eligible_for_cashback": False},
            ],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["total_spending"] == 125
    assert data["summary"]["total_cashback"] == 1
    assert list(data["by_month"]) == ["2025-05", "2025-06"]
    assert data["by_month"]["2025-06"]["eligible_spending"] == 60


@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_transactions")
@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_rewards")
def test_rewards_endpoint(
    mock_rewards: AsyncMock,
    mock_transactions_call: AsyncMock,
    client: TestClient,
    mock_transactions: list[Transaction],
):
    """Test GET /v1/rewards with a Silver, non-OG holder"""
    mock_rewards.return_value = RewardsInfo(gno_balance=Decimal("15"), is_og_holder=False, api_cashback_rate=Decimal("2"))
    mock_transactions_call.return_value = mock_transactions

    response = client.get("/v1/rewards", headers=AUTH)

    assert response.status_code == 200
    data = response.json()
    assert data["tier"]["label"] == "Silver"
    assert data["effective_rate"] == 2
    assert data["reported_base_rate"] == 2
    assert data["distance"]["gno_needed"] == 35
    assert data["distance"]["next_tier"]["label"] == "Gold"
    assert data["progress"]["progress_percentage"] == 12.5
    assert data["progress"]["potential_extra_cashback"] == 0.8

    stats = data["stats"]
    assert stats["earned_this_month"] == 1.6
    assert stats["eligible_transaction_count"] == 2
    assert stats["ineligible_transaction_count"] == 1
    assert stats["skipped_transaction_count"] == 1
    assert stats["projected_yearly_cashback"] == 19.2

    mock_rewards.assert_awaited_once_with("session-token")


@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_transactions")
@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_rewards")
def test_rewards_endpoint_og_platinum(
    mock_rewards: AsyncMock,
    mock_transactions_call: AsyncMock,
    client: TestClient,
    mock_transactions: list[Transaction],
):
    mock_rewards.return_value = RewardsInfo(gno_balance=Decimal("120"), is_og_holder=True, api_cashback_rate=Decimal("4"))
    mock_transactions_call.return_value = mock_transactions

    response = client.get("/v1/rewards", headers=AUTH)

    assert response.status_code == 200
    data = response.json()
    assert data["tier"]["label"] == "Platinum"
    assert data["effective_rate"] == 5
    assert data["distance"] == {"gno_needed": None, "next_tier": None}
    assert data["stats"]["earned_this_month"] == 4.0


def test_rewards_endpoint_requires_token(client: TestClient):
    response = client.get("/v1/rewards")
    assert response.status_code == 401

    response = client.get("/v1/rewards", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401


@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_transactions")
@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_rewards")
def test_rewards_endpoint_upstream_unavailable(
    mock_rewards: AsyncMock,
    mock_transactions_call: AsyncMock,
    client: TestClient,
):
    mock_rewards.side_effect = GnosisPayAPIError("Gnosis Pay API timeout after 30.0s")
    mock_transactions_call.return_value = []

    response = client.get("/v1/rewards", headers=AUTH)

    assert response.status_code == 503


@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_transactions")
@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_rewards")
def test_rewards_endpoint_token_rejected(
    mock_rewards: AsyncMock,
    mock_transactions_call: AsyncMock,
    client: TestClient,
):
    mock_rewards.side_effect = UnauthorizedError("Gnosis Pay rejected the session token")
    mock_transactions_call.return_value = []

    response = client.get("/v1/rewards", headers=AUTH)

    assert response.status_code == 401


@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_transactions")
@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient.get_rewards")
def test_rewards_endpoint_invalid_upstream_balance(
    mock_rewards: AsyncMock,
    mock_transactions_call: AsyncMock,
    client: TestClient,
):
    mock_rewards.return_value = RewardsInfo(gno_balance=Decimal("-3"), is_og_holder=False, api_cashback_rate=Decimal("0"))
    mock_transactions_call.return_value = []

    response = client.get("/v1/rewards", headers=AUTH)

    assert response.status_code == 502


@patch("payments_gateway.infrastructure.clients.gnosis_pay.GnosisPayClient._get")
def test_rewards_endpoint_skips_records_with_wrongly_typed_fields(
    mock_get: AsyncMock,
    client: TestClient,
    gnosis_pay_transactions: list[dict],
):
    """A record with a non-object billingCurrency is skipped, a non-object merchant is kept"""
    bad_currency = dict(gnosis_pay_transactions[0], threadId="thread_5", billingCurrency="EUR")
    bad_merchant = dict(gnosis_pay_transactions[0], threadId="thread_6", merchant="Shop")
    history = gnosis_pay_transactions + [bad_currency, bad_merchant]

    async def fake_get(path: str, token: str):
        if path.endswith("/rewards"):
            return {"isOg": False, "gnoBalance": 15, "cashbackRate": 2}
        return history

    mock_get.side_effect = fake_get

    response = client.get("/v1/rewards", headers=AUTH)

    assert response.status_code == 200
    stats = response.json()["stats"]
    assert stats["earned_this_month"] == 2.6
    assert stats["eligible_transaction_count"] == 3
    assert stats["ineligible_transaction_count"] == 1
    assert stats["skipped_transaction_count"] == 2

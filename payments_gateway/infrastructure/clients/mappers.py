"""Map raw Gnosis Pay payloads to domain models"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from payments_gateway.domain.models import RewardsInfo, Transaction
from payments_gateway.utils.date_utils import to_utc

# ISO 4217 numeric -> alpha; the API may send either form
NUMERIC_TO_ALPHA_CURRENCY = {
    "978": "EUR",
    "840": "USD",
    "826": "GBP",
    "756": "CHF",
    "208": "DKK",
    "578": "NOK",
    "752": "SEK",
    "985": "PLN",
    "203": "CZK",
    "348": "HUF",
}

SUPPORTED_CURRENCIES = set(NUMERIC_TO_ALPHA_CURRENCY.values())


def normalize_currency_code(code: Any, default: str = "EUR") -> str:
    """Numeric or alpha currency code to alpha code, falling back to default"""
    code = str(code or "").strip().upper()
    if code in NUMERIC_TO_ALPHA_CURRENCY:
        return NUMERIC_TO_ALPHA_CURRENCY[code]
    if code in SUPPORTED_CURRENCIES:
        return code

    logging.warning(f"Unknown currency code {code!r}, defaulting to {default}")
    return default


def parse_amount(raw: Any, decimals: Any) -> Optional[Decimal]:
    """
    Convert a minor-unit integer string to a major-unit Decimal.

    Example:
        ("12345", 2) → Decimal("123.45")
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        minor_units = Decimal(int(str(raw)))
        places = int(decimals) if decimals is not None else 2
    except (InvalidOperation, ValueError, TypeError):
        return None
    return minor_units.scaleb(-places)


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """ISO-8601 timestamp to aware UTC datetime, None when unparseable"""
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return to_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return None


def map_transaction(payload: Any, default_currency: str = "EUR") -> Transaction:
    """
    Map one API transaction to the domain Transaction.

    Field mapping:
    - threadId → transaction_id (the API has no separate id)
    - impactsCashback → is_eligible_for_cashback (only a JSON true is eligible)
    - billingAmount + billingCurrency.decimals → amount in major units

    Unusable amounts or timestamps become None so the statistics engine can
    skip and count them instead of failing the whole history.
    """
    if not isinstance(payload, dict):
        return Transaction(transaction_id="", created_at=None, amount=None, currency=default_currency)

    currency = payload.get("billingCurrency")
    if currency is None:
        currency = {}
    merchant = payload.get("merchant")
    if not isinstance(merchant, dict):
        merchant = {}

    # Without a currency object the decimals are unknown, so the amount is unusable
    if isinstance(currency, dict):
        amount = parse_amount(payload.get("billingAmount"), currency.get("decimals"))
        currency_code = normalize_currency_code(currency.get("code"), default_currency)
    else:
        amount = None
        currency_code = default_currency

    return Transaction(
        transaction_id=str(payload.get("threadId", "")),
        created_at=parse_timestamp(payload.get("createdAt")),
        amount=amount,
        currency=currency_code,
        is_eligible_for_cashback=payload.get("impactsCashback") is True,
        merchant_name=str(merchant.get("name", "")),
        kind=str(payload.get("kind", "Payment")),
        status=str(payload.get("status", "Approved")),
        is_pending=bool(payload.get("isPending", False)),
    )


def map_transactions(payloads: List[Any], default_currency: str = "EUR") -> List[Transaction]:
    return [map_transaction(payload, default_currency) for payload in payloads]


def map_rewards_info(payload: Dict[str, Any]) -> RewardsInfo:
    """
    Map the rewards response ({isOg, gnoBalance, cashbackRate}).

    cashbackRate upstream is the base rate; the OG bonus is added by the tier resolver.

    Raises:
        KeyError, TypeError, ValueError: payload is missing fields or has wrong types
    """
    return RewardsInfo(
        gno_balance=Decimal(str(payload["gnoBalance"])),
        is_og_holder=bool(payload["isOg"]),
        api_cashback_rate=Decimal(str(payload["cashbackRate"])),
    )

"""
Billing value objects: per-subscription outcome, run result, upcoming alert.

Ephemeral - returned to the caller, never persisted.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

# Outcome messages
MSG_BILLED = "billed"
MSG_AUTO_RENEW_DISABLED = "auto-renew disabled"
MSG_NO_PAYMENT_ASSET = "no payment asset"
MSG_ASSET_NOT_FOUND = "payment asset not found"
MSG_INSUFFICIENT_BALANCE = "insufficient balance"
MSG_CONCURRENT_MODIFICATION = "concurrent modification"


@dataclass(frozen=True)
class BillingOutcome:
    subscription_id: int
    subscription_name: str
    amount: Decimal
    asset_id: int | None
    success: bool
    message: str


@dataclass(frozen=True)
class BillingRunResult:
    """
    Result of one billing run for one owner and target date.

    Counters are derived from `results`, so they always agree with it.
    """
    processed_date: date
    results: tuple[BillingOutcome, ...] = field(default_factory=tuple)

    @property
    def total_processed(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total_processed - self.successful


@dataclass(frozen=True)
class BillingAlert:
    subscription_id: int
    subscription_name: str
    amount: Decimal
    billing_date: date
    asset_id: int | None
    asset_name: str | None
    days_until_billing: int

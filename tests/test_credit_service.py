"""Tests for the credit ledger service."""

from dataclasses import dataclass

import pytest

from profileperfect.domain.errors import InsufficientCreditsError, InvalidRequestError
from profileperfect.services.credits import CreditService
from tests.conftest import InMemoryCreditRepository


def test_charge_debits_exactly_once() -> None:
    repository = InMemoryCreditRepository(balances={"user-1": 5})
    service = CreditService(repository)

    service.charge("user-1", 4)

    assert repository.balances["user-1"] == 1


def test_charge_rejects_short_balance_without_mutation() -> None:
    repository = InMemoryCreditRepository(balances={"user-1": 1})
    service = CreditService(repository)

    with pytest.raises(InsufficientCreditsError) as excinfo:
        service.charge("user-1", 4)

    assert excinfo.value.required == 4
    assert excinfo.value.available == 1
    assert repository.balances["user-1"] == 1


def test_missing_account_counts_as_zero() -> None:
    service = CreditService(InMemoryCreditRepository())

    with pytest.raises(InsufficientCreditsError) as excinfo:
        service.charge("nobody", 1)

    assert excinfo.value.available == 0


@dataclass
class _RacingCreditRepository(InMemoryCreditRepository):
    """Reports a stale balance, as if another request debited in between."""

    stale_balance: int | None = 10

    def get_balance(self, user_id: str) -> int:
        if self.stale_balance is not None:
            stale, self.stale_balance = self.stale_balance, None
            return stale
        return super().get_balance(user_id)


def test_charge_reports_fresh_balance_when_debit_loses_race() -> None:
    repository = _RacingCreditRepository(balances={"user-1": 2})
    service = CreditService(repository)

    with pytest.raises(InsufficientCreditsError) as excinfo:
        service.charge("user-1", 4)

    assert excinfo.value.available == 2
    assert repository.balances["user-1"] == 2


def test_refund_and_grant_add_credits() -> None:
    repository = InMemoryCreditRepository(balances={"user-1": 1})
    service = CreditService(repository)

    service.refund("user-1", 2)
    balance = service.grant("user-1", 5)

    assert balance == 8
    assert service.get_balance("user-1") == 8


def test_grant_rejects_non_positive_amounts() -> None:
    service = CreditService(InMemoryCreditRepository())

    with pytest.raises(InvalidRequestError):
        service.grant("user-1", 0)

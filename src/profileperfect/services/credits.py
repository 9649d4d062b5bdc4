"""Credit ledger business logic."""

import logging
from dataclasses import dataclass
from typing import Protocol

from profileperfect.domain.errors import InsufficientCreditsError, InvalidRequestError
from profileperfect.domain.requests import GenerationRequest, RetouchRequest

_logger = logging.getLogger(__name__)


class CreditRepository(Protocol):
    """Persistence interface for credit balances."""

    def get_balance(self, user_id: str) -> int:
        """Return the current balance, or 0 when the user has no account."""

    def try_debit(self, user_id: str, amount: int) -> bool:
        """Atomically subtract amount if the balance covers it."""

    def credit(self, user_id: str, amount: int) -> int:
        """Add amount to the balance, creating the account if needed."""


@dataclass
class CreditService:
    """Service guarding credit balances."""

    repository: CreditRepository

    def required_credits(self, request: GenerationRequest | RetouchRequest) -> int:
        """Return the price of a request."""
        return request.required_credits

    def get_balance(self, user_id: str) -> int:
        """Return a user's current balance."""
        return self.repository.get_balance(user_id)

    def ensure_available(self, user_id: str, amount: int) -> None:
        """Raise if the balance does not cover amount. Mutates nothing."""
        available = self.repository.get_balance(user_id)
        if available < amount:
            raise InsufficientCreditsError(required=amount, available=available)

    def charge(self, user_id: str, amount: int) -> None:
        """Debit amount exactly once or raise InsufficientCreditsError."""
        self.ensure_available(user_id, amount)
        if not self.repository.try_debit(user_id, amount):
            # Another submission spent the balance between the read and the debit.
            raise InsufficientCreditsError(
                required=amount, available=self.repository.get_balance(user_id)
            )
        _logger.info("Debited %s credits from user %s", amount, user_id)

    def refund(self, user_id: str, amount: int) -> int:
        """Return previously debited credits."""
        balance = self.repository.credit(user_id, amount)
        _logger.info("Refunded %s credits to user %s", amount, user_id)
        return balance

    def grant(self, user_id: str, amount: int) -> int:
        """Add purchased or promotional credits."""
        if amount <= 0:
            raise InvalidRequestError("Amount must be a positive integer")
        return self.repository.credit(user_id, amount)

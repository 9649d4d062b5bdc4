"""Supabase-backed credit ledger."""

from dataclasses import dataclass

from supabase import Client

from profileperfect.domain.errors import PersistenceError
from profileperfect.services.credits import CreditRepository


@dataclass
class SupabaseCreditRepository(CreditRepository):
    """Credit balances stored in the credits table.

    Debits and grants go through Postgres functions so each one is a single
    statement; see ``supabase/migrations``.
    """

    client: Client

    def get_balance(self, user_id: str) -> int:
        """Return the current balance, or 0 without an account row."""
        response = (
            self.client.table("credits")
            .select("credits")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return 0
        return int(response.data[0].get("credits") or 0)

    def try_debit(self, user_id: str, amount: int) -> bool:
        """Decrement the balance only when it covers amount."""
        response = self.client.rpc(
            "try_debit_credits", {"p_user_id": user_id, "p_amount": amount}
        ).execute()
        return response.data is True

    def credit(self, user_id: str, amount: int) -> int:
        """Increment the balance, creating the row when missing."""
        response = self.client.rpc(
            "grant_credits", {"p_user_id": user_id, "p_amount": amount}
        ).execute()
        if response.data is None:
            raise PersistenceError(f"Failed to credit user {user_id}")
        return int(response.data)

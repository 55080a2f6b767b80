"""
Stake bookkeeping and the shared payout pool.
Features:
- Per-user deposit slot (replaced, never accumulated)
- Single pool balance funded by every value transfer
- Payout ledger of everything sent back to winners
"""

from typing import Dict

from app.core.exceptions import DepositTooHigh, InvalidAmount, InsufficientPoolBalance
from app.core.logger import get_logger
from app.core.store import SlotStore

logger = get_logger("economy")


class Pool:
    """
    The shared balance all payouts come from.

    Not partitioned per user: a winner is paid from whatever the pool holds
    at withdrawal time.
    """

    def __init__(self, initial_balance: int = 0):
        self.balance = initial_balance
        self.payouts: Dict[str, int] = {}

    def receive(self, amount: int) -> int:
        """Credit value transferred in. Returns the new balance."""
        self.balance += amount
        return self.balance

    def can_pay(self, amount: int) -> bool:
        return amount <= self.balance

    def transfer(self, to: str, amount: int) -> int:
        """Send `amount` out of the pool to `to`. Returns the new balance."""
        if not self.can_pay(amount):
            raise InsufficientPoolBalance()
        self.balance -= amount
        self.payouts[to] = self.payouts.get(to, 0) + amount
        logger.info(
            f"Paid {amount} wei to {to}",
            extra={"to": to, "amount": amount, "pool_balance": self.balance},
        )
        return self.balance


class AccountLedger:
    """Per-user deposited stake."""

    def __init__(self, pool: Pool, max_deposit: int):
        self.pool = pool
        self.max_deposit = max_deposit
        self._deposits: SlotStore[str, int] = SlotStore(int)

    def get_deposit(self, user: str) -> int:
        return self._deposits.get(user)

    def deposit(self, user: str, amount: int) -> int:
        """
        Replace the user's stake with `amount` and move the value into the pool.

        Raises:
            InvalidAmount: `amount` is negative.
            DepositTooHigh: `amount` exceeds the configured cap.
        """
        if amount < 0:
            raise InvalidAmount()
        if amount > self.max_deposit:
            logger.warning(
                "Deposit rejected",
                extra={"user": user, "amount": amount, "max_deposit": self.max_deposit},
            )
            raise DepositTooHigh()

        previous = self._deposits.get(user)
        self._deposits.set(user, amount)
        self.pool.receive(amount)

        logger.info(
            f"Deposit stored for {user}",
            extra={"user": user, "amount": amount, "previous": previous},
        )
        return amount

    def clear(self, user: str) -> None:
        self._deposits.clear(user)

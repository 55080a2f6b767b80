"""
Coin flip wager engine.

One slot per user: a pick, a deposit, an outstanding randomness request and
a result. The lifecycle is

    pick / deposit  ->  flip_coin  ->  (coordinator callback)  ->  withdraw_to_winner

State-mutating operations are serialised behind a single re-entrant lock,
so each one runs to completion before the next starts. The coordinator
callback is just another such operation arriving at an arbitrary later time.
"""

import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Dict, List, Optional

from app.core.access import AccessControl
from app.core.economy import AccountLedger, Pool
from app.core.exceptions import (
    FlipInProgress,
    InsufficientPoolBalance,
    InvalidPick,
    NoDepositYet,
    NoPickYet,
    NoResultYet,
    NotAWinner,
    UnknownRequest,
)
from app.core.logger import get_logger
from app.core.payout import PRIZE_MULTIPLIER, prize
from app.core.store import SlotStore
from app.core.vrf import RandomnessGateway

logger = get_logger("wager")


class Side(IntEnum):
    NONE = 0
    HEADS = 1
    TAILS = 2


def side_from_word(word: int) -> Side:
    """Map a raw random word onto HEADS or TAILS."""
    return Side(word % 2 + 1)


@dataclass(frozen=True)
class RequestParams:
    """Delivery parameters sent with every randomness request."""

    key_hash: str
    subscription_id: int
    minimum_request_confirmations: int = 3
    callback_gas_limit: int = 100_000
    num_words: int = 1


@dataclass
class WagerEvent:
    name: str
    args: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.name, **self.args}


EventListener = Callable[[WagerEvent], None]


class CoinFlipWager:
    """
    Pick a side, stake a deposit, flip, and collect 190% of the stake on a win.

    Also the randomness consumer: the coordinator it is registered with
    delivers results through `fulfill_random_words`. Only that coordinator
    holds a reference for the callback; the engine does not authenticate it.
    """

    def __init__(
        self,
        owner: str,
        gateway: RandomnessGateway,
        params: RequestParams,
        max_deposit: int,
        prize_multiplier: int = PRIZE_MULTIPLIER,
        pool: Optional[Pool] = None,
    ):
        self.access = AccessControl(owner)
        self.gateway = gateway
        self.params = params
        self.prize_multiplier = prize_multiplier
        self.pool = pool or Pool()
        self.ledger = AccountLedger(self.pool, max_deposit)

        self._picks: SlotStore[str, Side] = SlotStore(lambda: Side.NONE)
        self._requests: SlotStore[str, int] = SlotStore(int)
        self._results: SlotStore[str, Side] = SlotStore(lambda: Side.NONE)
        # request id -> user; written on flip, only read afterwards
        self._request_owners: Dict[int, str] = {}

        self.events: List[WagerEvent] = []
        self._listeners: List[EventListener] = []
        self._lock = threading.RLock()

    # ==================== Events ====================

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def _emit(self, name: str, **args) -> WagerEvent:
        event = WagerEvent(name, args)
        self.events.append(event)
        for listener in self._listeners:
            listener(event)
        return event

    # ==================== Player operations ====================

    def deposit(self, caller: str, amount: int) -> int:
        with self._lock:
            return self.ledger.deposit(caller, amount)

    def receive(self, caller: str, amount: int) -> int:
        """A plain value transfer is treated as a deposit."""
        return self.deposit(caller, amount)

    def pick(self, caller: str, side: int) -> Side:
        # Allowed while a flip is pending; the result is compared with the
        # pick current at withdrawal.
        if isinstance(side, bool) or not isinstance(side, int) or side not in (Side.HEADS, Side.TAILS):
            logger.warning("Invalid pick", extra={"user": caller, "side": side})
            raise InvalidPick()
        with self._lock:
            self._picks.set(caller, Side(side))
        logger.info(f"{caller} picked {Side(side).name}")
        return Side(side)

    def flip_coin(self, caller: str) -> int:
        """
        Request a random outcome for the caller's wager.

        Raises:
            NoPickYet, NoDepositYet, FlipInProgress: wager not ready.
            GatewayError: propagated from the coordinator, nothing stored.
        """
        with self._lock:
            if self._picks.get(caller) == Side.NONE:
                raise NoPickYet()
            if self.ledger.get_deposit(caller) <= 0:
                raise NoDepositYet()
            if self._requests.get(caller) != 0:
                raise FlipInProgress()

            p = self.params
            request_id = self.gateway.request_random_words(
                self,
                p.key_hash,
                p.subscription_id,
                p.minimum_request_confirmations,
                p.callback_gas_limit,
                p.num_words,
            )

            self._requests.set(caller, request_id)
            self._request_owners[request_id] = caller
            logger.info(f"Coin flipped for {caller}", extra={"request_id": request_id})
            self._emit("CoinFlipped", request_id=request_id, user=caller)
            return request_id

    def withdraw_to_winner(self, caller: str) -> int:
        """
        Pay out a won wager. Returns the amount transferred.

        Pick and result are cleared before the pool is checked, so an
        InsufficientPoolBalance rejection still consumes the win.
        """
        with self._lock:
            pick = self._picks.get(caller)
            result = self._results.get(caller)
            if pick == Side.NONE or result == Side.NONE:
                raise NoResultYet()
            if pick != result:
                raise NotAWinner()

            self._picks.clear(caller)
            self._results.clear(caller)

            amount = prize(self.ledger.get_deposit(caller), self.prize_multiplier)
            if not self.pool.can_pay(amount):
                logger.warning(
                    "Pool cannot cover prize",
                    extra={"user": caller, "amount": amount, "pool_balance": self.pool.balance},
                )
                raise InsufficientPoolBalance()

            self.ledger.clear(caller)
            self.pool.transfer(caller, amount)
            return amount

    # ==================== Coordinator callback ====================

    def fulfill_random_words(self, request_id: int, words: List[int]) -> Side:
        if not words:
            raise ValueError("At least one random word is required")
        with self._lock:
            user = self._request_owners.get(request_id)
            if user is None:
                logger.error("Randomness delivered for unknown request", extra={"request_id": request_id})
                raise UnknownRequest()

            result = side_from_word(words[0])
            self._results.set(user, result)
            self._requests.clear(user)

            logger.info(f"Coin landed {result.name} for {user}", extra={"request_id": request_id})
            self._emit("CoinLanded", request_id=request_id, result=int(result))
            return result

    # ==================== Accessors ====================

    def get_owner(self) -> str:
        return self.access.owner

    def get_balance(self, caller: str, user: str) -> int:
        self.access.require_owner(caller)
        return self.ledger.get_deposit(user)

    def get_request(self, caller: str, user: str) -> int:
        self.access.require_owner(caller)
        return self._requests.get(user)

    def get_result(self, caller: str, user: str) -> Side:
        self.access.require_owner(caller)
        return self._results.get(user)

    def get_pick(self, caller: str, user: str) -> Side:
        self.access.require_owner(caller)
        return self._picks.get(user)

    def request_owner(self, request_id: int) -> Optional[str]:
        return self._request_owners.get(request_id)

    @property
    def pool_balance(self) -> int:
        return self.pool.balance

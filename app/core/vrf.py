"""
Randomness coordinator boundary.

`RandomnessGateway` is the request side the wager engine depends on and
`RandomnessConsumer` the callback side it implements. `VRFCoordinatorMock`
is the local coordinator used for development and tests: it keeps funded
subscriptions, registers consumers, queues requests and later delivers
words to the consumer that asked for them.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from app.core.logger import get_logger
from app.core.rng import WordSource

logger = get_logger("vrf")

MAX_CONSUMERS = 100
MAX_NUM_WORDS = 500
MIN_REQUEST_CONFIRMATIONS = 3
MAX_REQUEST_CONFIRMATIONS = 200


# ==================== Errors ====================

class GatewayError(Exception):
    """Base class for coordinator failures. Never caught by the wager engine."""
    status_code = 503


class InvalidSubscription(GatewayError):
    pass


class InsufficientSubscriptionBalance(GatewayError):
    pass


class InvalidConsumer(GatewayError):
    pass


class TooManyConsumers(GatewayError):
    pass


class InvalidRequest(GatewayError):
    """Malformed request parameters or delivery words."""
    status_code = 400


class NonexistentRequest(InvalidRequest):
    status_code = 404


# ==================== Interfaces ====================

class RandomnessConsumer(Protocol):
    def fulfill_random_words(self, request_id: int, words: List[int]) -> None:
        """Receive the words for `request_id`. Called once per request."""
        ...


class RandomnessGateway(Protocol):
    def request_random_words(
        self,
        consumer: RandomnessConsumer,
        key_hash: str,
        subscription_id: int,
        minimum_request_confirmations: int,
        callback_gas_limit: int,
        num_words: int,
    ) -> int:
        """
        Queue a randomness request on behalf of `consumer`.

        Returns an opaque, non-zero request id. The words arrive later via
        `consumer.fulfill_random_words`.
        """
        ...


# ==================== Local coordinator ====================

@dataclass
class Subscription:
    id: int
    balance: int = 0
    consumers: List[RandomnessConsumer] = field(default_factory=list)


@dataclass
class PendingRandomRequest:
    request_id: int
    subscription_id: int
    consumer: RandomnessConsumer
    key_hash: str
    callback_gas_limit: int
    num_words: int


@dataclass
class Fulfillment:
    request_id: int
    payment: int
    success: bool
    words: List[int]


class VRFCoordinatorMock:
    """
    In-process coordinator.

    Payment for a fulfilment is `base_fee + gas_price_link * callback_gas_limit`
    and is charged against the subscription when the words are delivered.
    """

    def __init__(self, base_fee: int, gas_price_link: int, word_source: Optional[WordSource] = None):
        self.base_fee = base_fee
        self.gas_price_link = gas_price_link
        self.word_source = word_source or WordSource()

        self._subscriptions: Dict[int, Subscription] = {}
        self._requests: Dict[int, PendingRandomRequest] = {}
        self._next_subscription_id = 0
        self._next_request_id = 0
        self._lock = threading.Lock()

    # ---------- subscriptions ----------

    def create_subscription(self) -> int:
        with self._lock:
            self._next_subscription_id += 1
            sub_id = self._next_subscription_id
            self._subscriptions[sub_id] = Subscription(id=sub_id)
        logger.info(f"Subscription {sub_id} created")
        return sub_id

    def get_subscription(self, subscription_id: int) -> Subscription:
        sub = self._subscriptions.get(subscription_id)
        if sub is None:
            raise InvalidSubscription(f"Subscription {subscription_id} does not exist")
        return sub

    def fund_subscription(self, subscription_id: int, amount: int) -> int:
        with self._lock:
            sub = self.get_subscription(subscription_id)
            sub.balance += amount
            balance = sub.balance
        logger.info(
            f"Subscription {subscription_id} funded",
            extra={"amount": amount, "balance": balance},
        )
        return balance

    def add_consumer(self, subscription_id: int, consumer: RandomnessConsumer) -> None:
        with self._lock:
            sub = self.get_subscription(subscription_id)
            if any(c is consumer for c in sub.consumers):
                return
            if len(sub.consumers) >= MAX_CONSUMERS:
                raise TooManyConsumers()
            sub.consumers.append(consumer)
        logger.info(f"Consumer added to subscription {subscription_id}")

    def remove_consumer(self, subscription_id: int, consumer: RandomnessConsumer) -> None:
        with self._lock:
            sub = self.get_subscription(subscription_id)
            if not any(c is consumer for c in sub.consumers):
                raise InvalidConsumer()
            sub.consumers = [c for c in sub.consumers if c is not consumer]

    def cancel_subscription(self, subscription_id: int) -> int:
        """Remove the subscription and return its remaining balance."""
        with self._lock:
            sub = self.get_subscription(subscription_id)
            del self._subscriptions[subscription_id]
        logger.info(f"Subscription {subscription_id} cancelled", extra={"refund": sub.balance})
        return sub.balance

    # ---------- requests ----------

    def request_random_words(
        self,
        consumer: RandomnessConsumer,
        key_hash: str,
        subscription_id: int,
        minimum_request_confirmations: int,
        callback_gas_limit: int,
        num_words: int,
    ) -> int:
        with self._lock:
            sub = self.get_subscription(subscription_id)
            if not any(c is consumer for c in sub.consumers):
                raise InvalidConsumer(f"Consumer is not registered on subscription {subscription_id}")
            if sub.balance <= 0:
                raise InsufficientSubscriptionBalance(f"Subscription {subscription_id} is not funded")
            if not 1 <= num_words <= MAX_NUM_WORDS:
                raise InvalidRequest(f"num_words must be between 1 and {MAX_NUM_WORDS}")
            if not MIN_REQUEST_CONFIRMATIONS <= minimum_request_confirmations <= MAX_REQUEST_CONFIRMATIONS:
                raise InvalidRequest(
                    f"Confirmations must be between {MIN_REQUEST_CONFIRMATIONS} and {MAX_REQUEST_CONFIRMATIONS}"
                )

            self._next_request_id += 1
            request_id = self._next_request_id
            self._requests[request_id] = PendingRandomRequest(
                request_id=request_id,
                subscription_id=subscription_id,
                consumer=consumer,
                key_hash=key_hash,
                callback_gas_limit=callback_gas_limit,
                num_words=num_words,
            )

        logger.info(
            "RandomWordsRequested",
            extra={"request_id": request_id, "subscription_id": subscription_id, "num_words": num_words},
        )
        return request_id

    def pending_request_ids(self) -> List[int]:
        with self._lock:
            return sorted(self._requests)

    def fulfill_random_words(self, request_id: int, consumer: RandomnessConsumer = None) -> Fulfillment:
        """Deliver generated words for a queued request."""
        request = self._requests.get(request_id)
        if request is None:
            raise NonexistentRequest(f"Request {request_id} does not exist")
        words = self.word_source.words_for(request_id, request.num_words)
        return self.fulfill_random_words_with_override(request_id, consumer, words)

    def fulfill_random_words_with_override(
        self, request_id: int, consumer: Optional[RandomnessConsumer], words: List[int]
    ) -> Fulfillment:
        """
        Deliver `words` for a queued request.

        The request is consumed and the subscription charged even when the
        consumer callback fails; the failure is logged and reported in the
        returned `Fulfillment`.
        """
        with self._lock:
            request = self._requests.get(request_id)
            if request is None:
                raise NonexistentRequest(f"Request {request_id} does not exist")
            if consumer is not None and consumer is not request.consumer:
                raise InvalidConsumer("Request belongs to a different consumer")
            if len(words) != request.num_words:
                raise InvalidRequest(f"Expected {request.num_words} words, got {len(words)}")

            payment = self.base_fee + self.gas_price_link * request.callback_gas_limit
            sub = self.get_subscription(request.subscription_id)
            if sub.balance < payment:
                raise InsufficientSubscriptionBalance(
                    f"Subscription {sub.id} cannot pay {payment} for request {request_id}"
                )
            sub.balance -= payment
            del self._requests[request_id]

        # Callback runs outside the coordinator lock; the consumer takes its own
        success = True
        try:
            request.consumer.fulfill_random_words(request_id, list(words))
        except Exception:
            success = False
            logger.error(f"Consumer callback failed for request {request_id}", exc_info=True)

        logger.info(
            "RandomWordsFulfilled",
            extra={"request_id": request_id, "payment": payment, "success": success},
        )
        return Fulfillment(request_id=request_id, payment=payment, success=success, words=list(words))

    def fulfill_pending(self) -> List[Fulfillment]:
        """Fulfil every queued request. Used by the background job."""
        results = []
        for request_id in self.pending_request_ids():
            try:
                results.append(self.fulfill_random_words(request_id))
            except GatewayError as e:
                logger.warning(f"Could not fulfil request {request_id}: {e}")
        return results

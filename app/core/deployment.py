"""
Local bootstrap: coordinator, funded subscription and the wager registered
as its consumer.
"""

from dataclasses import dataclass

from app.config import AppConfig
from app.core.logger import get_logger
from app.core.rng import WordSource
from app.core.vrf import VRFCoordinatorMock
from app.core.wager import CoinFlipWager, RequestParams

logger = get_logger("deployment")


@dataclass
class Deployment:
    coordinator: VRFCoordinatorMock
    wager: CoinFlipWager
    subscription_id: int


def deploy(config: AppConfig) -> Deployment:
    vrf = config.vrf

    coordinator = VRFCoordinatorMock(
        base_fee=vrf.base_fee,
        gas_price_link=vrf.gas_price_link,
        word_source=WordSource(vrf.word_source),
    )
    logger.info("Coordinator deployed")

    if vrf.subscription_id < 0:
        raise ValueError(f"vrf.subscription_id must be 0 or positive, got {vrf.subscription_id}")

    # The local coordinator numbers subscriptions from 1. A configured id N is
    # reached by creating N-1 empty, unfunded subscriptions first.
    subscription_id = coordinator.create_subscription()
    while subscription_id < vrf.subscription_id:
        subscription_id = coordinator.create_subscription()
    coordinator.fund_subscription(subscription_id, vrf.fund_amount)

    wager = CoinFlipWager(
        owner=config.wager.owner.lower(),
        gateway=coordinator,
        params=RequestParams(
            key_hash=vrf.key_hash,
            subscription_id=subscription_id,
            minimum_request_confirmations=vrf.minimum_request_confirmations,
            callback_gas_limit=vrf.callback_gas_limit,
            num_words=vrf.num_words,
        ),
        max_deposit=config.wager.max_deposit,
        prize_multiplier=config.wager.prize_multiplier,
    )
    logger.info("Wager deployed", extra={"owner": wager.get_owner()})

    coordinator.add_consumer(subscription_id, wager)

    return Deployment(coordinator=coordinator, wager=wager, subscription_id=subscription_id)

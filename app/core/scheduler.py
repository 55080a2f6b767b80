from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.logger import get_logger
from app.core.vrf import VRFCoordinatorMock

logger = get_logger("scheduler")


class FulfillmentScheduler:
    """Periodically delivers words for every queued randomness request."""

    def __init__(self, coordinator: VRFCoordinatorMock, interval_seconds: int = 5):
        self.coordinator = coordinator
        self.interval_seconds = interval_seconds
        self.scheduler = BackgroundScheduler()

    def start(self):
        self.scheduler.add_job(
            self.fulfill_pending,
            IntervalTrigger(seconds=self.interval_seconds),
            id="fulfill_pending",
            name="Fulfil pending randomness requests",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Fulfilment scheduler started (every {self.interval_seconds}s)")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Fulfilment scheduler shutdown")

    def fulfill_pending(self):
        fulfilled = self.coordinator.fulfill_pending()
        if fulfilled:
            logger.info(f"Fulfilled {len(fulfilled)} randomness request(s)")
        return fulfilled

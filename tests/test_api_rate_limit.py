import unittest
from fastapi.testclient import TestClient
from app.main import create_app
from app.config import AppConfig, settings
from app.routers.api import limiter

PLAYER = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"


class TestApiRateLimit(unittest.TestCase):
    def setUp(self):
        # Create a new app instance for each test to ensure a clean state
        self.app = create_app(AppConfig())
        limiter.reset()

        self._previous = (settings.rate_limit.enabled, settings.rate_limit.wager_requests)
        settings.rate_limit.enabled = True
        settings.rate_limit.wager_requests = "5/minute"

    def tearDown(self):
        settings.rate_limit.enabled, settings.rate_limit.wager_requests = self._previous
        limiter.reset()

    def test_rate_limit_applied_to_wager_endpoints(self):
        endpoint = "/api/pick"
        body = {"side": 1}
        headers = {"X-Caller-Address": PLAYER}

        with TestClient(self.app) as client:
            # The first 5 requests should succeed
            for i in range(5):
                response = client.post(endpoint, json=body, headers=headers)
                self.assertEqual(
                    response.status_code, 200,
                    f"Request {i+1}/6 should have succeeded, but got {response.status_code}."
                )

            # The 6th request should be rate-limited
            response = client.post(endpoint, json=body, headers=headers)
            self.assertEqual(
                response.status_code, 429,
                f"The 6th request should have been rate-limited (429), but got {response.status_code}."
            )

            # Limits are tracked per caller address
            other = {"X-Caller-Address": "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"}
            response = client.post(endpoint, json=body, headers=other)
            self.assertEqual(response.status_code, 200)


if __name__ == "__main__":
    unittest.main()

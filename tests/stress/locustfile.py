"""
Loko Load Testing with Locust

Seed the accounts first:
    flask --app wsgi system init
    flask --app wsgi users create --name "Load Client" --email client@loko.local --password TestPass123! --role client
    flask --app wsgi users create --name "Load Courier" --email courier@loko.local --password TestPass123! --role courier

Run with:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5001

Or headless:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5001 \
           --users 10 --spawn-rate 2 --run-time 60s --headless

Pass thresholds:
- p95 response time < 500ms for reads
- p95 response time < 1000ms for writes
- Error rate < 1%
"""

import time
import random
import uuid
from typing import Optional, Dict, List

from locust import HttpUser, task, between, events


# =============================================================================
# CONFIGURATION
# =============================================================================

CLIENT_CREDENTIALS = {"email": "client@loko.local", "password": "TestPass123!"}
COURIER_CREDENTIALS = {"email": "courier@loko.local", "password": "TestPass123!"}
ADMIN_CREDENTIALS = {"email": "admin@loko.local", "password": "Password123!"}

# Drop-off points around Abidjan
DESTINATIONS = [
    {"latitude": 5.3599, "longitude": -4.0083, "description": "Cocody, blue gate"},
    {"latitude": 5.3167, "longitude": -4.0333, "description": "Plateau, tower lobby"},
    {"latitude": 5.2920, "longitude": -4.0037, "description": "Treichville market"},
]


# =============================================================================
# METRICS TRACKING
# =============================================================================

class MetricsCollector:
    """Collect and report metrics."""

    def __init__(self):
        self.request_counts: Dict[str, int] = {}
        self.error_counts: Dict[str, int] = {}
        self.response_times: Dict[str, List[float]] = {}

    def record(self, name: str, response_time: float, success: bool):
        if name not in self.request_counts:
            self.request_counts[name] = 0
            self.error_counts[name] = 0
            self.response_times[name] = []

        self.request_counts[name] += 1
        if not success:
            self.error_counts[name] += 1
        self.response_times[name].append(response_time)

    def get_summary(self) -> Dict:
        summary = {}
        for name in self.request_counts:
            times = sorted(self.response_times[name])
            count = len(times)
            if count == 0:
                continue

            p50_idx = int(count * 0.50)
            p95_idx = int(count * 0.95)
            p99_idx = int(count * 0.99)

            summary[name] = {
                "count": self.request_counts[name],
                "errors": self.error_counts[name],
                "error_rate": self.error_counts[name] / self.request_counts[name] * 100,
                "avg_ms": sum(times) / count,
                "p50_ms": times[p50_idx] if p50_idx < count else times[-1],
                "p95_ms": times[p95_idx] if p95_idx < count else times[-1],
                "p99_ms": times[p99_idx] if p99_idx < count else times[-1],
            }
        return summary


metrics = MetricsCollector()


# =============================================================================
# USER BEHAVIORS
# =============================================================================

class LokoUser(HttpUser):
    """
    Base Loko user with a login helper.
    """
    wait_time = between(0.5, 2)
    abstract = True

    def login(self, credentials: Dict) -> Optional[str]:
        """Authenticate and return a bearer token."""
        response = self.client.post("/api/auth/login", json=credentials, name="auth/login")
        if response.status_code == 200:
            return response.json().get("token")
        return None

    @staticmethod
    def headers(token: Optional[str]) -> Dict:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def timed(self, name: str, ok_statuses, method: str, path: str, token: Optional[str], **kwargs):
        start = time.time()
        response = getattr(self.client, method)(path, headers=self.headers(token), name=name, **kwargs)
        metrics.record(name, (time.time() - start) * 1000, response.status_code in ok_statuses)
        return response


class BrowsingUser(LokoUser):
    """
    Client checking on orders and notifications.
    """
    weight = 3  # 3x more browsing than full delivery runs

    token: Optional[str] = None
    seen_deliveries: List[str] = []

    def on_start(self):
        self.token = self.login(CLIENT_CREDENTIALS)

    @task(5)
    def list_deliveries(self):
        response = self.timed("deliveries/list", (200,), "get", "/api/deliveries", self.token, params={"limit": 20})
        if response.status_code == 200:
            self.seen_deliveries = [d["id"] for d in response.json().get("deliveries", [])]

    @task(3)
    def get_delivery(self):
        if not self.seen_deliveries:
            return
        delivery_id = random.choice(self.seen_deliveries)
        self.timed("deliveries/get", (200, 404), "get", f"/api/deliveries/{delivery_id}", self.token)

    @task(2)
    def list_notifications(self):
        self.timed("notifications/list", (200,), "get", "/api/notifications", self.token)

    @task(1)
    def health_check(self):
        self.timed("system/health", (200,), "get", "/health", None)


class DeliveryFlowUser(LokoUser):
    """
    Full lifecycle: client orders, courier accepts, moves and hands off.

    The client relays the confirmation code to the courier, as the
    recipient would at the door.
    """
    weight = 2

    client_token: Optional[str] = None
    courier_token: Optional[str] = None

    def on_start(self):
        self.client_token = self.login(CLIENT_CREDENTIALS)
        self.courier_token = self.login(COURIER_CREDENTIALS)

    @task
    def order_to_door(self):
        response = self.timed(
            "deliveries/create",
            (201,),
            "post",
            "/api/deliveries",
            self.client_token,
            json={
                "destination": random.choice(DESTINATIONS),
                "items": [{"name": "Parcel", "price": 10, "quantity": 1}],
                "idempotency_key": str(uuid.uuid4()),
            },
        )
        if response.status_code != 201:
            return

        order = response.json()
        delivery_id = order["delivery_id"]

        response = self.timed(
            "deliveries/assign", (200,), "post", f"/api/deliveries/{delivery_id}/assign", self.courier_token, json={}
        )
        if response.status_code != 200:
            return

        for status in ("IN_TRANSIT", "ARRIVED_ZONE"):
            response = self.timed(
                "deliveries/status",
                (200,),
                "post",
                f"/api/deliveries/{delivery_id}/status",
                self.courier_token,
                json={"status": status},
            )
            if response.status_code != 200:
                return

        self.timed(
            "deliveries/proof",
            (200,),
            "post",
            f"/api/deliveries/{delivery_id}/proof",
            self.courier_token,
            json={
                "otp": order["confirmation_code"],
                "latitude": 5.36,
                "longitude": -4.01,
            },
        )


class AdminUser(LokoUser):
    """
    Admin watching the dispatch board.
    """
    weight = 1

    token: Optional[str] = None

    def on_start(self):
        self.token = self.login(ADMIN_CREDENTIALS)

    @task(3)
    def in_flight(self):
        self.timed(
            "deliveries/in_transit", (200,), "get", "/api/deliveries", self.token, params={"status": "IN_TRANSIT"}
        )

    @task(1)
    def search(self):
        self.timed(
            "deliveries/search", (200,), "get", "/api/deliveries", self.token, params={"search": "market"}
        )


# =============================================================================
# EVENT HANDLERS
# =============================================================================

@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Print summary when test stops."""
    print("\n" + "=" * 80)
    print("LOAD TEST SUMMARY")
    print("=" * 80)

    summary = metrics.get_summary()

    print(f"\n{'Endpoint':<30} {'Count':>8} {'Errors':>8} {'Err%':>8} {'Avg(ms)':>10} {'P95(ms)':>10}")
    print("-" * 80)

    total_requests = 0
    total_errors = 0
    all_pass = True

    for name, stats in sorted(summary.items()):
        total_requests += stats["count"]
        total_errors += stats["errors"]

        # Writes get the looser threshold
        is_write = any(part in name for part in ("create", "assign", "status", "proof"))
        p95_threshold = 1000 if is_write else 500
        passed = stats["p95_ms"] < p95_threshold and stats["error_rate"] < 1

        status = "PASS" if passed else "FAIL"
        if not passed:
            all_pass = False

        print(f"{name:<30} {stats['count']:>8} {stats['errors']:>8} {stats['error_rate']:>7.2f}% {stats['avg_ms']:>9.1f} {stats['p95_ms']:>9.1f} [{status}]")

    print("-" * 80)
    print(f"{'TOTAL':<30} {total_requests:>8} {total_errors:>8} {total_errors/max(total_requests,1)*100:>7.2f}%")
    print("=" * 80)

    if all_pass:
        print("\n[PASS] All endpoints within thresholds")
    else:
        print("\n[FAIL] Some endpoints exceeded thresholds")
        print("  - Reads (list/get): P95 < 500ms, Error rate < 1%")
        print("  - Writes (create/assign/status/proof): P95 < 1000ms, Error rate < 1%")

    print("=" * 80)

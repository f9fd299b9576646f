"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags redemption   # Many confirmations, one invite code
  locust -f locustfile.py --tags webhook      # Replayed webhook deliveries
  locust -f locustfile.py --tags checkin      # Double scans at the door
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

The target must run with ROSTER_STATIC_CODES containing LOAD_INVITE_CODES
and a sandbox gateway configured, and share WEBHOOK_SECRET/ADMIN_SECRET
with this process (see environment variables below).
"""

import base64
import hashlib
import hmac
import json
import os
import random
import time
import uuid

from locust import HttpUser, task, between, tag, events

WEBHOOK_SECRET = os.environ.get("WEBHOOK_SECRET", "change-me-webhook-secret")
INVITE_CODES = os.environ.get("LOAD_INVITE_CODES", "LOAD-0001,LOAD-0002,LOAD-0003").split(",")
CONTESTED_CODE = os.environ.get("LOAD_CONTESTED_CODE", INVITE_CODES[0])

# Shared state
COMPLETED = []  # (booking_id, reference_number)


def signed_webhook(order_id: str, status: str = "PAID", event_id: str = None):
    body = json.dumps({
        "event_id": event_id or f"evt_{uuid.uuid4().hex}",
        "event_type": "PAYMENT_SUCCESS_WEBHOOK" if status == "PAID" else "PAYMENT_FAILED_WEBHOOK",
        "data": {"order_id": order_id, "status": status},
    }).encode()
    timestamp = str(int(time.time()))
    digest = hmac.new(WEBHOOK_SECRET.encode(), timestamp.encode() + body, hashlib.sha256).digest()
    headers = {
        "Content-Type": "application/json",
        "x-webhook-signature": base64.b64encode(digest).decode(),
        "x-webhook-timestamp": timestamp,
    }
    return body, headers


def booking_payload(code: str):
    return {
        "invite_code": code,
        "customer_name": "Load Tester",
        "customer_email": f"load_{random.randint(10000, 99999)}@test.com",
        "customer_phone": f"9{random.randint(100000000, 999999999)}",
        "ticket_type": "ultimate",
        "ticket_count": 1,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Invite codes: {', '.join(INVITE_CODES)} (contested: {CONTESTED_CODE})")
    print("=" * 60)


class RedemptionUser(HttpUser):
    """
    TEST 1: Many pending bookings for one invite code, all confirmed at once.

    Run: locust -f locustfile.py --tags redemption -u 50 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE invite_code = 'LOAD-0001' AND payment_status = 'completed';
    Should be exactly 1
    """
    wait_time = between(0, 0.1)

    @tag("redemption")
    @task
    def book_and_confirm(self):
        resp = self.client.post("/api/v1/bookings/", json=booking_payload(CONTESTED_CODE),
                                name="/api/v1/bookings/ [contested]")
        if resp.status_code != 201:
            return
        order_id = resp.json()["booking"]["order_id"]

        body, headers = signed_webhook(order_id)
        with self.client.post("/api/v1/payments/webhook", data=body, headers=headers,
                              name="/api/v1/payments/webhook [contested]",
                              catch_response=True) as resp:
            if resp.status_code in (200, 409):
                resp.success()  # 409: someone else redeemed the code first
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class WebhookReplayUser(HttpUser):
    """
    TEST 2: The gateway retries the same delivery many times.

    Run: locust -f locustfile.py --tags webhook -u 50 -r 20 --run-time 60s

    Expect one "processed" per event id, "duplicate" for every replay, and a
    single ticket email per booking (ticketing_fanout / email_sent).
    """
    wait_time = between(0, 0.2)

    def on_start(self):
        self.body = None
        code = random.choice(INVITE_CODES[1:] or INVITE_CODES)
        resp = self.client.post("/api/v1/bookings/", json=booking_payload(code))
        if resp.status_code == 201:
            booking = resp.json()["booking"]
            self.body, self.headers = signed_webhook(booking["order_id"])
            COMPLETED.append((booking["id"], booking["reference_number"]))

    @tag("webhook")
    @task
    def replay_delivery(self):
        if not self.body:
            return
        with self.client.post("/api/v1/payments/webhook", data=self.body, headers=self.headers,
                              catch_response=True) as resp:
            if resp.status_code in (200, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class DoorScanUser(HttpUser):
    """
    TEST 3: Several scanners approve the same guest.

    Run: locust -f locustfile.py --tags checkin -u 20 -r 20 --run-time 30s

    Exactly one approval per booking returns 200; the rest are 409.
    """
    wait_time = between(0, 0.1)

    @tag("checkin")
    @task
    def double_scan(self):
        if not COMPLETED:
            return
        booking_id, reference = random.choice(COMPLETED)
        self.client.post("/api/v1/checkin/verify", json={"code": f"SLANUP-DIWALI-{reference}-Guest"},
                         name="/api/v1/checkin/verify")
        with self.client.post("/api/v1/checkin/approve",
                              json={"booking_id": booking_id, "reference_number": reference},
                              catch_response=True) as resp:
            if resp.status_code in (200, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class EdgeCaseUser(HttpUser):
    """
    TEST 4: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_invite(self):
        with self.client.post("/api/v1/invites/check", json={"invite_code": "NOPE-0000"},
                              catch_response=True) as resp:
            self._expect(resp, (200,))

    @tag("edge")
    @task
    def malformed_invite(self):
        with self.client.post("/api/v1/invites/check", json={"invite_code": "bad code!"},
                              catch_response=True) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def unsigned_webhook(self):
        body, _ = signed_webhook("TXN0")
        with self.client.post("/api/v1/payments/webhook", data=body,
                              headers={"Content-Type": "application/json"},
                              catch_response=True) as resp:
            self._expect(resp, (401,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/", data="not json at all",
                              headers={"Content-Type": "application/json"},
                              catch_response=True) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def unknown_reference(self):
        with self.client.post("/api/v1/checkin/verify", json={"code": "DIW000000ZZZZ"},
                              catch_response=True) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def health_check(self):
        self.client.get("/health")

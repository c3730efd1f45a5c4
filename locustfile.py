import json
import os
from datetime import datetime

from locust import FastHttpUser, between, task

STATUS_PATH = os.environ.get("STATUS_API_PATH", "/api/status")

# Mirrors a small dashboard watch-list: one healthy site, one bare host, one dead port
TARGETS = [
    {"id": "example", "url": "https://example.com"},
    {"id": "bare-host", "url": "example.org"},
    {"id": "dead-port", "url": "http://127.0.0.1:1"},
]


def get_log_file_name():
    run_name = os.environ.get("RUN_NAME")
    if run_name:
        return f"logs/{run_name}_locust_status.log"
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"logs/locust_status_{timestamp}.log"


class DashboardUser(FastHttpUser):
    # The dashboard refreshes every 15 seconds
    wait_time = between(14, 16)

    def on_start(self):
        os.makedirs("logs", exist_ok=True)
        self.log_file = get_log_file_name()

    @task
    def poll_status(self):
        with self.client.post(
            STATUS_PATH, json={"targets": TARGETS}, catch_response=True
        ) as response:
            if response.status_code != 200:
                response.failure(f"status endpoint returned {response.status_code}")
                return
            try:
                snapshot = response.json()
            except json.JSONDecodeError:
                response.failure("status endpoint returned non-JSON body")
                return
            missing = [t["id"] for t in TARGETS if t["id"] not in snapshot]
            if missing:
                response.failure(f"snapshot missing targets: {missing}")
                return
            with open(self.log_file, "a") as f:
                for target_id, result in snapshot.items():
                    f.write(f"{target_id} {result['status']} {result['latency']} {result['lastChecked']}\n")

    @task
    def preflight(self):
        self.client.request("OPTIONS", STATUS_PATH, name="preflight")

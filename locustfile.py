"""
Locust load tests for the Donations API.

Install: pip install -e .[dev]
Run: locust -f locustfile.py --host=http://127.0.0.1:5050

For headless: locust -f locustfile.py --host=http://127.0.0.1:5050 \
    --users 10 --spawn-rate 2 --run-time 1m --headless

Set LOCUST_PROJECT_ID to a seeded project for meaningful numbers.
"""

import os
from locust import HttpUser, task, between

PROJECT_ID = os.getenv("LOCUST_PROJECT_ID", "00000000-0000-4000-8000-000000000001")


class DonationsAPIUser(HttpUser):
    wait_time = between(1, 3)

    @task(10)
    def ping(self):
        self.client.get("/__ping")

    @task(8)
    def stats(self):
        self.client.get(f"/api/donations/stats?projectId={PROJECT_ID}", name="/api/donations/stats")

    @task(5)
    def recent(self):
        self.client.get(
            f"/api/donations/recent?projectId={PROJECT_ID}&limit=10",
            name="/api/donations/recent",
        )

    @task(3)
    def project(self):
        self.client.get(f"/api/projects/{PROJECT_ID}", name="/api/projects/[id]")

    @task(1)
    def global_stats(self):
        self.client.get("/api/donations/stats")

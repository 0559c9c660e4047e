"""Load test using Locust: 100 concurrent users, p95 < 200ms target.

Run with:
    locust -f tests/load/locustfile.py --host http://localhost:8000 \
           --users 100 --spawn-rate 10 --run-time 60s --headless
"""

from __future__ import annotations

import uuid

from locust import HttpUser, between, task


class ChannelLifecycleUser(HttpUser):
    """Simulates viewers browsing history and the occasional channel deletion."""

    wait_time = between(0.5, 2.0)

    def on_start(self) -> None:
        self.user_id = str(uuid.uuid4())

    @task(5)
    def health_check(self) -> None:
        self.client.get("/health", name="/health")

    @task(4)
    def list_watch_history(self) -> None:
        self.client.get(
            f"/api/v1/users/{self.user_id}/watch-history?page=1&page_size=20",
            name="/api/v1/users/{id}/watch-history",
        )

    @task(2)
    def watch_stats(self) -> None:
        self.client.get(
            f"/api/v1/users/{self.user_id}/watch-history/stats",
            name="/api/v1/users/{id}/watch-history/stats",
        )

    @task(2)
    def deletion_stats(self) -> None:
        self.client.get("/api/v1/channels/deletion-stats", name="/api/v1/channels/deletion-stats")

    @task(1)
    def delete_unknown_channel(self) -> None:
        with self.client.delete(
            "/api/v1/channels/me",
            headers={"X-User-ID": str(uuid.uuid4())},
            name="/api/v1/channels/me [404]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 404:
                resp.success()

    @task(1)
    def recover_unknown_tombstone(self) -> None:
        with self.client.post(
            f"/api/v1/channels/recover/{uuid.uuid4()}",
            json={"new_user_id": str(uuid.uuid4())},
            name="/api/v1/channels/recover/{id} [404]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 404:
                resp.success()

"""
Webhook notifications for backup runs

Copyright 2025 HyperSec

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

import requests

from .errors import NotificationError

SERVICE_NAME = "gitsaver"
USER_AGENT = "gitsaver-webhook"


class WebhookNotifier:
    def __init__(
        self,
        success_url: Optional[str] = None,
        failure_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: int = 10,
        service: str = SERVICE_NAME,
    ):
        self.success_url = success_url
        self.failure_url = failure_url
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.service = service
        self.logger = logging.getLogger(self.__class__.__name__)

    def url_for(self, status: str) -> Optional[str]:
        return self.success_url if status == "success" else self.failure_url

    def build_payload(self, status: str, message: str) -> dict:
        return {
            "status": status,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service,
        }

    def notify(self, status: str, message: str):
        """
        POST the run outcome to the webhook configured for this status.

        Raises:
            NotificationError: if the request fails or returns a non-2xx status
        """
        url = self.url_for(status)
        if not url:
            self.logger.info(
                f"[NOTIFY] No {status} webhook URL configured, skipping notification"
            )
            return

        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        headers.update(self.headers)

        try:
            response = requests.post(
                url,
                json=self.build_payload(status, message),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(f"Failed to send webhook request: {e}") from e

        if not 200 <= response.status_code < 300:
            raise NotificationError(
                f"Webhook request failed with status code: {response.status_code}"
            )

        self.logger.info(
            f"[NOTIFY] Webhook notification sent to {url} (status: {response.status_code})"
        )

"""
Delivery gateway: pushes a finished artifact to an external webhook
(for example a Google Drive drop point).
"""

import os
import json
import asyncio
from typing import Any, Dict, Optional

import requests

from app.config import Settings
from app.errors import DeliveryError


class DeliveryService:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.settings.delivery_webhook_url)

    def _post(self, file_path: str, metadata: Dict[str, Any]) -> requests.Response:
        with open(file_path, 'rb') as f:
            return self.session.post(
                self.settings.delivery_webhook_url,
                files={"file": (os.path.basename(file_path), f)},
                data={
                    "fileName": os.path.basename(file_path),
                    "metadata": json.dumps(metadata or {}),
                },
                timeout=self.settings.delivery_timeout,
            )

    async def deliver(self, file_path: str, metadata: Optional[Dict[str, Any]] = None) -> Any:
        """
        Upload file_path with metadata to the delivery webhook.

        Returns:
            The webhook's JSON response, or its text body if it is not JSON

        Raises:
            DeliveryError: Webhook not configured, file missing, or upload failed
        """
        if not self.configured:
            raise DeliveryError("Delivery webhook URL not configured")
        if not os.path.isfile(file_path):
            raise DeliveryError(f"File not found: {os.path.basename(file_path)}")

        try:
            response = await asyncio.to_thread(self._post, file_path, metadata or {})
        except requests.exceptions.RequestException as e:
            raise DeliveryError(f"Failed to reach delivery webhook: {str(e)}")

        if not response.ok:
            raise DeliveryError(
                f"Delivery webhook returned HTTP {response.status_code}",
                detail=response.text,
            )

        try:
            return response.json()
        except ValueError:
            return response.text

# backend/agenda/services/whatsapp.py
"""
WhatsApp delivery through the Evolution API.

Each business brings its own Evolution instance:
    {"serverUrl": "...", "apiKey": "...", "instanceName": "..."}
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class WhatsAppSendError(Exception):
    """Message was not accepted by the Evolution API."""


@dataclass(frozen=True)
class EvolutionConfig:
    server_url: str
    api_key: str
    instance_name: str

    @property
    def send_text_url(self) -> str:
        return f"{self.server_url.rstrip('/')}/message/sendText/{self.instance_name}"

    @classmethod
    def from_raw(cls, raw) -> Optional["EvolutionConfig"]:
        """Parse stored JSON (str or dict). Incomplete config → None."""
        if not raw:
            return None
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                return None
        if not isinstance(raw, dict):
            return None

        server_url = raw.get("serverUrl")
        api_key = raw.get("apiKey")
        instance_name = raw.get("instanceName")
        if not (server_url and api_key and instance_name):
            return None
        return cls(server_url=server_url, api_key=api_key, instance_name=instance_name)


def clean_phone(phone: str) -> str:
    """Digits only, as the Evolution API expects."""
    return re.sub(r"\D", "", phone or "")


class WhatsAppClient:
    """Synchronous sender; reminder passes run in a worker thread."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout if timeout is not None else settings.whatsapp_timeout_seconds

    def send_text(self, config: EvolutionConfig, phone: str, text: str) -> None:
        """
        Send a text message.

        Raises:
            WhatsAppSendError: transport failure, timeout or non-2xx response
        """
        number = clean_phone(phone)
        payload = {
            "number": number,
            "text": text,
            "options": {"delay": 1000},
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(
                    config.send_text_url,
                    json=payload,
                    headers={"apikey": config.api_key},
                )
        except httpx.TimeoutException as e:
            raise WhatsAppSendError(f"Timeout sending to {number}") from e
        except httpx.HTTPError as e:
            raise WhatsAppSendError(f"Transport error: {e}") from e

        if not resp.is_success:
            raise WhatsAppSendError(f"{resp.status_code}: {resp.text}")

        logger.info(f"WhatsApp message sent via {config.instance_name} to {number}")

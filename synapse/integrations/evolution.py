"""
Evolution API client (WhatsApp gateway).

Only the endpoints the backend uses: instance listing and webhook
configuration. Authentication is the `apikey` header.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from synapse.config import settings
from synapse.core.errors import ExternalAPIError

logger = logging.getLogger(__name__)

WEBHOOK_EVENTS = [
    "MESSAGES_UPSERT",
    "MESSAGES_UPDATE",
    "CONNECTION_UPDATE",
    "QRCODE_UPDATED",
]


class EvolutionAPIError(ExternalAPIError):
    pass


def instance_name_of(item: Dict[str, Any]) -> Optional[str]:
    """Instance name from a fetchInstances entry (v1 nests it under "instance", v2 does not)."""
    nested = item.get("instance")
    if isinstance(nested, dict) and nested.get("instanceName"):
        return nested["instanceName"]
    return item.get("name") or item.get("instanceName")


class EvolutionClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"apikey": api_key},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls) -> "EvolutionClient":
        settings.require("evolution_api_url", "evolution_api_key")
        return cls(settings.evolution_api_url, settings.evolution_api_key, timeout=settings.http_timeout)

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise EvolutionAPIError(f"Evolution API request failed: {e}") from e

    def fetch_instances(self) -> List[Dict[str, Any]]:
        response = self._request("GET", "/instance/fetchInstances")
        if not response.is_success:
            raise EvolutionAPIError(
                f"Evolution API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.json()

    def fetch_instance_names(self) -> List[str]:
        names = []
        for item in self.fetch_instances():
            name = instance_name_of(item)
            if name:
                names.append(name)
        return names

    def set_webhook(self, instance_name: str, url: str, events: Optional[List[str]] = None) -> httpx.Response:
        """Configure the instance webhook.

        Tries the nested {"webhook": {...}} payload first and falls back to the
        legacy flat payload when the gateway rejects it. Returns the last response.
        """
        config = {
            "enabled": True,
            "url": url,
            "webhookByEvents": True,
            "events": events or WEBHOOK_EVENTS,
        }
        response = self._request("POST", f"/webhook/set/{instance_name}", json={"webhook": config})
        if response.is_success:
            return response

        logger.warning(f"New webhook format failed for {instance_name} ({response.status_code}), trying legacy...")
        return self._request("POST", f"/webhook/set/{instance_name}", json=config)

    def find_webhook(self, instance_name: str) -> Optional[Dict[str, Any]]:
        response = self._request("GET", f"/webhook/find/{instance_name}")
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise EvolutionAPIError(
                f"Evolution API error: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.json()

"""
n8n public API client. Authentication is the X-N8N-API-KEY header.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from synapse.config import settings
from synapse.core.errors import ExternalAPIError

logger = logging.getLogger(__name__)


class N8nAPIError(ExternalAPIError):
    pass


class N8nClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"X-N8N-API-KEY": api_key},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls) -> "N8nClient":
        settings.require("n8n_api_url", "n8n_api_key")
        return cls(settings.n8n_api_url, settings.n8n_api_key, timeout=settings.http_timeout)

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _call(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise N8nAPIError(f"n8n request failed: {e}") from e
        if not response.is_success:
            raise N8nAPIError(
                f"n8n {method} {path} failed: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.json() if response.content else None

    # Workflows

    def list_workflows(self) -> List[Dict[str, Any]]:
        return self._call("GET", "/workflows")["data"]

    def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return self._call("GET", f"/workflows/{workflow_id}")

    def create_workflow(self, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/workflows", json=workflow)

    def update_workflow(self, workflow_id: str, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("PUT", f"/workflows/{workflow_id}", json=workflow)

    def set_active(self, workflow_id: str, active: bool) -> Dict[str, Any]:
        """Activate or deactivate; older n8n versions only accept PUT {"active": ...}."""
        action = "activate" if active else "deactivate"
        try:
            return self._call("POST", f"/workflows/{workflow_id}/{action}")
        except N8nAPIError as e:
            if e.status_code is None:
                raise
            logger.info(f"{action} endpoint rejected {workflow_id} ({e.status_code}), retrying via update")
            return self.update_workflow(workflow_id, {"active": active})

    # Executions

    def list_executions(self, workflow_id: Optional[str] = None, limit: int = 5, status: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"limit": limit}
        if workflow_id:
            params["workflowId"] = workflow_id
        if status:
            params["status"] = status
        return self._call("GET", "/executions", params=params)["data"]

    def get_execution(self, execution_id: str, include_data: bool = True) -> Dict[str, Any]:
        params = {"includeData": "true" if include_data else "false"}
        return self._call("GET", f"/executions/{execution_id}", params=params)

    # Credentials

    def list_credentials(self) -> List[Dict[str, Any]]:
        data = self._call("GET", "/credentials")["data"]
        return [{"id": c.get("id"), "name": c.get("name"), "type": c.get("type")} for c in data]

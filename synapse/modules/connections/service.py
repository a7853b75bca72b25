import logging
from typing import Iterable, List, Optional

from supabase import Client

from synapse.config import settings
from synapse.core.errors import FunctionError
from synapse.integrations.evolution import EvolutionClient, EvolutionAPIError
from synapse.modules.connections.models import PROVIDER_EVOLUTION, NIL_UUID
from synapse.modules.connections.schemas import (
    BoundInstance, DisconnectedWorkspace, SharedInstance, BindingReport,
    WebhookSyncResult, WebhookSyncResponse, WebhookStatus, DebugSnapshot, CleanupResponse
)

logger = logging.getLogger(__name__)


def partition_bindings(instance_names: Iterable[str], workspaces: List[dict]) -> BindingReport:
    """Split gateway instances and workspace records into bound / orphaned / disconnected.

    An instance is bound to the first workspace claiming it; when several
    workspaces claim the same instance it is also listed under `shared`.
    """
    report = BindingReport()
    known = list(dict.fromkeys(n for n in instance_names if n))
    known_set = set(known)

    claims = {}
    for ws in workspaces:
        name = ws.get("instance_name")
        if name:
            claims.setdefault(name, []).append(ws)

    for instance in known:
        claimers = claims.get(instance)
        if not claimers:
            report.orphaned.append(instance)
            continue
        first = claimers[0]
        report.bound.append(BoundInstance(
            instance=instance,
            workspace_id=first["id"],
            workspace_name=first.get("name"),
        ))
        if len(claimers) > 1:
            report.shared.append(SharedInstance(
                instance=instance,
                workspace_ids=[w["id"] for w in claimers],
            ))

    for ws in workspaces:
        name = ws.get("instance_name")
        if not name:
            reason = "instance_name is empty"
        elif name not in known_set:
            reason = f"Instance '{name}' does not exist at the gateway"
        else:
            continue
        report.disconnected.append(DisconnectedWorkspace(
            workspace_id=ws["id"],
            workspace_name=ws.get("name"),
            instance_name=name,
            reason=reason,
        ))

    return report


class ConnectionService:
    def __init__(self, supabase: Client, evolution: Optional[EvolutionClient] = None):
        self.supabase = supabase
        self._evolution = evolution

    @property
    def evolution(self) -> EvolutionClient:
        if self._evolution is None:
            self._evolution = EvolutionClient.from_settings()
        return self._evolution

    def list_workspaces(self) -> List[dict]:
        result = self.supabase.table("workspaces")\
            .select("id, name, instance_name, owner_id")\
            .execute()
        return result.data or []

    def list_evolution_connections(self) -> List[dict]:
        result = self.supabase.table("whatsapp_connections")\
            .select("*")\
            .eq("provider", PROVIDER_EVOLUTION)\
            .execute()
        return result.data or []

    def audit_bindings(self) -> BindingReport:
        """Compare gateway instances with workspace claims. Read-only."""
        instances = self.evolution.fetch_instance_names()
        workspaces = self.list_workspaces()
        logger.info(f"Gateway instances: {len(instances)}, workspaces: {len(workspaces)}")
        return partition_bindings(instances, workspaces)

    def sync_webhooks(self, webhook_url: Optional[str] = None) -> WebhookSyncResponse:
        """Point every Evolution connection's webhook at the ingest URL"""
        url = webhook_url or settings.evolution_webhook_url
        if not url:
            raise FunctionError("Evolution webhook URL not configured")

        connections = self.list_evolution_connections()
        logger.info(f"[SYNC-WHATSAPP-WEBHOOKS] Starting sync for {len(connections)} connections")

        results = []
        for conn in connections:
            instance = conn.get("instance_name")
            if not instance:
                continue
            logger.info(f"[SYNC-WHATSAPP-WEBHOOKS] Syncing instance: {instance}")
            try:
                response = self.evolution.set_webhook(instance, url)
                results.append(WebhookSyncResult(
                    instance=instance,
                    success=response.is_success,
                    status=response.status_code,
                ))
            except EvolutionAPIError as e:
                logger.error(f"[SYNC-WHATSAPP-WEBHOOKS] Failed to sync {instance}: {e}")
                results.append(WebhookSyncResult(instance=instance, success=False, error=str(e)))

        return WebhookSyncResponse(success=True, results=results)

    def webhook_status(self) -> List[WebhookStatus]:
        """Current gateway-side webhook config for every Evolution connection"""
        statuses = []
        for conn in self.list_evolution_connections():
            instance = conn.get("instance_name")
            if not instance:
                continue
            try:
                webhook = self.evolution.find_webhook(instance)
                statuses.append(WebhookStatus(instance=instance, connection_id=conn["id"], webhook=webhook))
            except EvolutionAPIError as e:
                statuses.append(WebhookStatus(instance=instance, connection_id=conn["id"], error=str(e)))
        return statuses

    def debug_snapshot(self, member_limit: int = 100) -> DebugSnapshot:
        """All connections (newest first) and a sample of memberships, query errors included"""
        snapshot = DebugSnapshot()
        try:
            result = self.supabase.table("whatsapp_connections")\
                .select("*")\
                .order("created_at", desc=True)\
                .execute()
            snapshot.connections = result.data or []
        except Exception as e:
            snapshot.connError = str(e)

        try:
            result = self.supabase.table("workspace_members")\
                .select("*")\
                .limit(member_limit)\
                .execute()
            snapshot.members = result.data or []
        except Exception as e:
            snapshot.memberError = str(e)

        return snapshot

    def wipe_connections(self) -> CleanupResponse:
        """Delete every whatsapp_connections row. Only when ALLOW_DEBUG_CLEANUP is set."""
        if not settings.allow_debug_cleanup:
            raise FunctionError("Cleanup is disabled (set ALLOW_DEBUG_CLEANUP=true)", status_code=403)
        result = self.supabase.table("whatsapp_connections")\
            .delete()\
            .neq("id", NIL_UUID)\
            .execute()
        deleted = len(result.data or [])
        logger.warning(f"[DEBUG-DB] Wiped {deleted} whatsapp connections")
        return CleanupResponse(success=True, message=f"All connections wiped ({deleted} rows).")

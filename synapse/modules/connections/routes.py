from fastapi import APIRouter, Depends
from supabase import Client

from synapse.database.supabase_client import get_service_supabase
from synapse.modules.connections.schemas import WebhookSyncResponse
from synapse.modules.connections.service import ConnectionService

router = APIRouter(tags=["connections"])


def get_connection_service(supabase: Client = Depends(get_service_supabase)) -> ConnectionService:
    return ConnectionService(supabase)


@router.post("/sync-whatsapp-webhooks", response_model=WebhookSyncResponse)
async def sync_whatsapp_webhooks(service: ConnectionService = Depends(get_connection_service)):
    """Re-point every Evolution instance webhook at the ingest URL"""
    return service.sync_webhooks()


@router.get("/debug-db")
async def debug_db(cleanup: bool = False, service: ConnectionService = Depends(get_connection_service)):
    """Dump connections and memberships; ?cleanup=true wipes all connections when enabled"""
    if cleanup:
        return service.wipe_connections()
    return service.debug_snapshot()

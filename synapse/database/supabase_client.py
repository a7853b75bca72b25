from supabase import create_client, Client
from synapse.config import settings


class SupabaseClient:
    """Process-wide Supabase clients, created on first use.

    The anon client only resolves user access tokens. Everything that reads or
    repairs workspace data goes through the service-role client (bypasses RLS).
    Neither falls back to the other.
    """

    _anon: Client = None
    _service: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._anon is None:
            settings.require("supabase_url", "supabase_key")
            cls._anon = create_client(settings.supabase_url, settings.supabase_key)
        return cls._anon

    @classmethod
    def get_service_client(cls) -> Client:
        if cls._service is None:
            settings.require("supabase_url", "supabase_service_role_key")
            cls._service = create_client(settings.supabase_url, settings.supabase_service_role_key)
        return cls._service


def get_supabase() -> Client:
    """Anon client (token lookups)"""
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    """Service-role client (admin reads and writes)"""
    return SupabaseClient.get_service_client()

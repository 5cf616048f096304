from typing import Dict
from supabase import create_client, Client
from kitchen_ops.config import settings
import logging

logger = logging.getLogger(__name__)

ANON = "anon"
SERVICE_ROLE = "service_role"


class SupabaseClient:
    """One lazily created client per key type: request handlers run under the anon key so RLS applies,
    reminder dispatch and WhatsApp sends run under the service role key."""

    _clients: Dict[str, Client] = {}

    @classmethod
    def _key_for(cls, kind: str) -> str:
        if kind == SERVICE_ROLE and settings.supabase_service_role_key:
            return settings.supabase_service_role_key
        if kind == SERVICE_ROLE:
            logger.warning("SUPABASE_SERVICE_ROLE_KEY is not set; background jobs will run under the anon key")
        return settings.supabase_key

    @classmethod
    def get(cls, kind: str = ANON) -> Client:
        if kind not in cls._clients:
            cls._clients[kind] = create_client(settings.supabase_url, cls._key_for(kind))
        return cls._clients[kind]

    @classmethod
    def reset(cls):
        cls._clients.clear()


def get_supabase() -> Client:
    return SupabaseClient.get(ANON)


def get_service_supabase() -> Client:
    return SupabaseClient.get(SERVICE_ROLE)

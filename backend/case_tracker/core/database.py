"""
Database connections: Supabase client setup.

Clients are built once at startup (see ``core.services``) and handed to the
services that need them.
"""

import logging
from typing import Any

from supabase import create_client, Client

from case_tracker.config import Settings
from case_tracker.core.session import SessionRefresher, with_session_refresh

logger = logging.getLogger(__name__)


def create_supabase_client(settings: Settings) -> Client:
    """Create the Supabase client used by the handlers.

    Uses the service_role key when configured (handlers do their own project
    access checks), otherwise the anon key so RLS applies.
    """
    if settings.SUPABASE_SERVICE_KEY:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
    logger.warning("SUPABASE_SERVICE_KEY not configured, falling back to anon key (RLS applies)")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


class SupabaseService:
    """Base for services that talk to Supabase tables.

    Every query goes through ``_execute`` so an expired session gets one
    refresh-and-retry.
    """

    def __init__(self, db: Client, refresher: SessionRefresher | None = None):
        self.db = db
        self.refresher = refresher

    def _execute(self, query: Any) -> Any:
        return with_session_refresh(self.refresher, query.execute)

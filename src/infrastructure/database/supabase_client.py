from __future__ import annotations

import logging
import os

from supabase import Client, create_client

logger = logging.getLogger(__name__)

# Simple reusable singleton client getter for the ledger and file storage
_CLIENT_SINGLETON: Client | None = None


def get_supabase_client() -> Client | None:
    """Shared Supabase client, or None when disabled or not configured.

    A None client switches the ledger and storage to their local fallbacks.
    """
    global _CLIENT_SINGLETON
    disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_ANON_KEY")
    if disabled or not url or not key:
        return None
    if _CLIENT_SINGLETON is None:
        _CLIENT_SINGLETON = create_client(url, key)
        logger.info("Supabase client created for %s", url)
    return _CLIENT_SINGLETON

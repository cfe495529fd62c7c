from functools import lru_cache

from supabase import Client, create_client

from app.config import settings
from app.logging import logger


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """Process-wide managed backend client, built once from configuration."""
    settings.require()
    logger.info("Creating backend client for %s", settings.SUPABASE_URL)
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)

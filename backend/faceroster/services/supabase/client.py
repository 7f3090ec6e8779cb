"""Supabase client configuration and initialization.

The backend talks to Supabase with the service role key when one is
configured. Row-level security is therefore bypassed and every repository
call must scope its queries by owner (``addedBy`` / ``ownerId``) itself.

Uses HTTP/1.1 with a retrying transport; HTTP/2 multiplexing through
Cloudflare has been seen to drop connections mid-request.
"""

from functools import lru_cache

import httpx
import structlog
from supabase import Client, create_client
from supabase.lib.client_options import SyncClientOptions

from faceroster.core.config import get_settings

logger = structlog.get_logger(__name__)

_HTTP_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
_HTTP_LIMITS = httpx.Limits(max_keepalive_connections=5, max_connections=10)
_HTTP_RETRIES = 3


def _create_http_client() -> httpx.Client:
    """Create an HTTP/1.1 httpx client with connection-level retries."""
    transport = httpx.HTTPTransport(retries=_HTTP_RETRIES, http2=False)
    return httpx.Client(
        transport=transport,
        timeout=_HTTP_TIMEOUT,
        limits=_HTTP_LIMITS,
        http2=False,
    )


def _create_supabase_client() -> Client | None:
    """Create and configure the Supabase client.

    Returns:
        Configured Supabase client or None if not configured.
    """
    settings = get_settings()
    key = settings.supabase_service_key or settings.supabase_key

    if not settings.supabase_url or not key:
        logger.warning(
            "supabase_not_configured",
            has_url=bool(settings.supabase_url),
            has_key=bool(key),
        )
        return None

    try:
        options = SyncClientOptions(httpx_client=_create_http_client())
        client = create_client(
            supabase_url=settings.supabase_url,
            supabase_key=key,
            options=options,
        )
        logger.info(
            "supabase_client_created",
            using_service_key=bool(settings.supabase_service_key),
            http_version="1.1",
            retries=_HTTP_RETRIES,
        )
        return client
    except Exception as e:
        logger.error("supabase_client_creation_failed", error=str(e))
        return None


@lru_cache(maxsize=1)
def get_supabase_client() -> Client | None:
    """Get the cached Supabase client, or None if not configured."""
    return _create_supabase_client()

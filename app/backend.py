"""
Managed backend client creation and connectivity checks.
All persistence, authentication and storage go through the Supabase async client.
"""

from typing import Any, Awaitable, Callable, Dict, Optional
from supabase import AsyncClient, AsyncClientOptions, acreate_client
from app.config import settings
import logging

logger = logging.getLogger(__name__)

# Signature of anything that can hand out a backend client for an optional user token
BackendFactory = Callable[[Optional[str]], Awaitable[AsyncClient]]


def backend_client_options() -> AsyncClientOptions:
    """
    Options for per-request clients.

    Sessions belong to the API caller, so the client neither keeps them nor
    schedules background token refreshes.
    """
    return AsyncClientOptions(auto_refresh_token=False, persist_session=False)


async def create_backend_client(access_token: Optional[str] = None) -> AsyncClient:
    """
    Create a backend client.

    Args:
        access_token: Optional user access token. When given, table queries,
            RPC calls and storage requests run with the caller's permissions
            instead of the anonymous role.

    Returns:
        Configured AsyncClient
    """
    client = await acreate_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=backend_client_options()
    )

    if access_token:
        # Sub-clients are built lazily from these headers
        client.options.headers["Authorization"] = f"Bearer {access_token}"
        client.postgrest.auth(access_token)
        logger.debug("Created user-scoped backend client")

    return client


async def _close_session(name: str, close: Optional[Callable[[], Awaitable[None]]]) -> None:
    if close is None:
        return
    try:
        await close()
    except Exception as e:
        logger.debug(f"Closing backend {name} session failed: {e}")


async def close_backend_client(client: Any) -> None:
    """
    Release everything a per-request client opened.

    The auth session always exists; the table and storage sessions only
    once they were used.
    """
    auth = getattr(client, "auth", None)
    timer = getattr(auth, "_refresh_token_timer", None)
    if timer is not None:
        timer.cancel()
        auth._refresh_token_timer = None
    await _close_session("auth", getattr(auth, "close", None))

    postgrest = getattr(client, "_postgrest", None)
    await _close_session("table", getattr(postgrest, "aclose", None))

    storage = getattr(client, "_storage", None)
    await _close_session("storage", getattr(getattr(storage, "session", None), "aclose", None))


async def check_backend_connection(client: Optional[AsyncClient] = None) -> bool:
    """
    Test backend connectivity.
    Returns True if a one-row select on the listings table succeeds, False otherwise.
    """
    owns_client = client is None
    try:
        if owns_client:
            client = await create_backend_client()
        await client.table(settings.listings_table).select("id").limit(1).execute()
        logger.info("Backend connection successful")
        return True
    except Exception as e:
        logger.error(f"Backend connection failed: {e}")
        return False
    finally:
        if owns_client and client is not None:
            await close_backend_client(client)


async def get_backend_info(client: Optional[AsyncClient] = None) -> Dict[str, Any]:
    """
    Get backend connection information for monitoring.
    Never exposes the API key.
    """
    reachable = await check_backend_connection(client)
    return {
        "backend": "supabase",
        "host": settings.supabase_host,
        "reachable": reachable,
        "listings_table": settings.listings_table,
        "storage_bucket": settings.supabase_storage_bucket,
        "local_token_verification": settings.verifies_tokens_locally,
    }

import logging
import httpx
from typing import Optional

logger = logging.getLogger(__name__)

# Global HTTP client instance
client: Optional[httpx.AsyncClient] = None

async def init_http():
    """Initialize the global HTTP client shared by all upstream tools."""
    global client

    # - connect: 10s (establishing connection)
    # - read: 25s (Agromonitoring history calls can be slow)
    # - write: 10s (polygon creation bodies)
    # - pool: 30s (getting connection from pool)
    timeout_config = httpx.Timeout(
        connect=10.0,
        read=25.0,
        write=10.0,
        pool=30.0
    )

    client = httpx.AsyncClient(
        timeout=timeout_config,
        limits=httpx.Limits(
            max_keepalive_connections=50,
            max_connections=100,
            keepalive_expiry=30
        ),
        headers={
            "Accept-Encoding": "gzip, deflate",
            "User-Agent": "KisanMitr/1.0 (+https://kisanmitr.example.com)"
        },
    )
    logger.info("HTTP client initialized")

async def close_http():
    """Close the global HTTP client."""
    global client
    if client:
        await client.aclose()
        client = None
        logger.info("HTTP client closed")

def set_http_client(new_client: Optional[httpx.AsyncClient]) -> None:
    """Swap the global client (tests install one backed by a MockTransport)."""
    global client
    client = new_client

def get_http_client() -> httpx.AsyncClient:
    """Get the global HTTP client instance."""
    if client is None:
        raise RuntimeError("HTTP client not initialized. Call init_http() first.")
    return client

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from equipment_booking.client.backend import BackendClient


@asynccontextmanager
async def get_backend_client(base_url: str | None = None) -> AsyncGenerator[BackendClient, None]:
    client = BackendClient(base_url)
    try:
        yield client
    finally:
        await client.aclose()

"""
Data providers.

``get_provider`` is the FastAPI dependency the routes use. It yields a
DatabaseProvider bound to a fresh session, or the shared in-memory sample
store when ``DATA_PROVIDER=sample``.
"""
from typing import AsyncGenerator, Optional

from ledgerflow.config import settings
from ledgerflow.database import AsyncSessionLocal
from ledgerflow.providers.base import DataProvider
from ledgerflow.providers.database import DatabaseProvider
from ledgerflow.providers.memory import InMemoryProvider

_sample_provider: Optional[InMemoryProvider] = None


def get_sample_provider() -> InMemoryProvider:
    """The process-wide sample store, seeded on first use."""
    global _sample_provider
    if _sample_provider is None:
        from ledgerflow.seed.sample import seed_sample_data

        _sample_provider = InMemoryProvider()
        seed_sample_data(_sample_provider)
    return _sample_provider


async def get_provider() -> AsyncGenerator[DataProvider, None]:
    """FastAPI dependency yielding the configured data provider."""
    if settings.DATA_PROVIDER == "sample":
        yield get_sample_provider()
        return

    async with AsyncSessionLocal() as session:
        yield DatabaseProvider(session)


__all__ = [
    "DataProvider",
    "DatabaseProvider",
    "InMemoryProvider",
    "get_provider",
    "get_sample_provider",
]

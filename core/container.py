from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from core.database_client import ConnectionFactory, DatabaseClient
from utils.config import AppConfig, load_config


class ApplicationContainer:
    """Lightweight dependency container for assembling the database client."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        connection_factory: Optional[ConnectionFactory] = None,
    ) -> None:
        self.config = config or load_config()
        self._database = DatabaseClient(self.config, connection_factory)

    @property
    def database(self) -> DatabaseClient:
        return self._database

    async def shutdown(self) -> None:
        await self._database.close()

    @asynccontextmanager
    async def lifespan(self) -> AsyncIterator[DatabaseClient]:
        try:
            yield self._database
        finally:
            await self.shutdown()

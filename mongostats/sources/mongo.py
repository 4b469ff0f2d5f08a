"""MongoDB source — reads ``serverStatus`` from the admin database."""

from __future__ import annotations

import logging
import re

from pymongo import AsyncMongoClient
from pymongo.errors import OperationFailure, PyMongoError

from mongostats.config import Settings
from mongostats.errors import AuthenticationError, StatsSourceError
from mongostats.sources.base import RawSnapshot, StatsSource
from mongostats.utils.time import utc_now

logger = logging.getLogger("mongostats.sources.mongo")

# Unauthorized, AuthenticationFailed
AUTH_ERROR_CODES = {13, 18}
_AUTH_MESSAGE = re.compile(r"unauthorized|auth(entication)? failed", re.IGNORECASE)


def is_auth_failure(error: PyMongoError) -> bool:
    """True when the server rejected our credentials or permissions."""
    if isinstance(error, OperationFailure) and error.code in AUTH_ERROR_CODES:
        return True
    return bool(_AUTH_MESSAGE.search(str(error)))


class MongoStatsSource(StatsSource):
    """Fetch server statistics from one MongoDB instance."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 27017,
        database: str = "admin",
        username: str = "",
        password: str = "",
        timeout_ms: int = 5000,
        client: AsyncMongoClient | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.database = database
        self.username = username
        self.password = password
        self.timeout_ms = timeout_ms
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoStatsSource":
        return cls(
            host=settings.mongo_host,
            port=settings.mongo_port,
            database=settings.mongo_database,
            username=settings.mongo_username,
            password=settings.mongo_password,
            timeout_ms=settings.mongo_timeout_ms,
        )

    @property
    def source_name(self) -> str:
        return f"mongodb://{self.host}:{self.port}"

    def _get_client(self) -> AsyncMongoClient:
        if self._client is None:
            kwargs: dict = {
                "serverSelectionTimeoutMS": self.timeout_ms,
                "connectTimeoutMS": self.timeout_ms,
            }
            if self.username.strip():
                kwargs.update(
                    username=self.username,
                    password=self.password,
                    authSource=self.database,
                )
            self._client = AsyncMongoClient(self.host, self.port, **kwargs)
        return self._client

    async def fetch_snapshot(self) -> RawSnapshot:
        try:
            document = await self._get_client().admin.command("serverStatus")
        except PyMongoError as e:
            if is_auth_failure(e):
                raise AuthenticationError(str(e)) from e
            raise StatsSourceError(str(e)) from e
        return RawSnapshot(document=dict(document), observed_at=utc_now())

    async def health_check(self) -> bool:
        try:
            await self._get_client().admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed for {self.source_name}: {e}")
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

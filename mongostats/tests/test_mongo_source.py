"""Tests for the MongoDB serverStatus source."""

import pytest
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from mongostats.config import Settings
from mongostats.errors import AuthenticationError, StatsSourceError
from mongostats.sources.mongo import MongoStatsSource, is_auth_failure
from mongostats.tests.fakes import server_status


class _FakeAdmin:
    def __init__(self, reply):
        self.reply = reply
        self.commands: list[str] = []

    async def command(self, name):
        self.commands.append(name)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class _FakeClient:
    def __init__(self, reply):
        self.admin = _FakeAdmin(reply)
        self.closed = False

    async def close(self):
        self.closed = True


class TestAuthDetection:
    def test_authentication_failed_code(self):
        assert is_auth_failure(OperationFailure("Authentication failed.", code=18))

    def test_unauthorized_code(self):
        assert is_auth_failure(OperationFailure("not authorized on admin", code=13))

    def test_legacy_unauthorized_message(self):
        assert is_auth_failure(OperationFailure("Error with command serverStatus: unauthorized"))

    def test_connectivity_is_not_auth(self):
        assert not is_auth_failure(ServerSelectionTimeoutError("localhost:27017: connection refused"))


@pytest.mark.asyncio
async def test_fetch_snapshot_runs_server_status():
    client = _FakeClient(server_status())
    source = MongoStatsSource(client=client)

    snapshot = await source.fetch_snapshot()

    assert client.admin.commands == ["serverStatus"]
    assert snapshot.document["uptime"] == 7200.0
    assert snapshot.observed_at.tzinfo is not None


@pytest.mark.asyncio
async def test_auth_failure_becomes_authentication_error():
    source = MongoStatsSource(client=_FakeClient(OperationFailure("Authentication failed.", code=18)))

    with pytest.raises(AuthenticationError) as exc_info:
        await source.fetch_snapshot()

    assert exc_info.value.subject == "Invalid MongoDB Authentication"


@pytest.mark.asyncio
async def test_other_failures_become_source_errors():
    source = MongoStatsSource(client=_FakeClient(ServerSelectionTimeoutError("connection refused")))

    with pytest.raises(StatsSourceError) as exc_info:
        await source.fetch_snapshot()

    assert exc_info.value.body == "A Mongo DB error has occurred: connection refused."


@pytest.mark.asyncio
async def test_health_check_and_close():
    client = _FakeClient({"ok": 1.0})
    source = MongoStatsSource(client=client)

    assert await source.health_check() is True
    await source.close()
    assert client.closed


def test_from_settings_uses_configured_target():
    source = MongoStatsSource.from_settings(
        Settings(MONGO_HOST="db.internal", MONGO_PORT="27018", MONGO_USERNAME="monitor")
    )
    assert source.source_name == "mongodb://db.internal:27018"
    assert source.database == "admin"
    assert source.username == "monitor"


@pytest.mark.asyncio
async def test_client_construction_failure_becomes_source_error(monkeypatch):
    from pymongo.errors import ConfigurationError as MongoConfigurationError

    source = MongoStatsSource(host="bad host")

    def _refuse():
        raise MongoConfigurationError("invalid host")

    monkeypatch.setattr(source, "_get_client", _refuse)

    with pytest.raises(StatsSourceError):
        await source.fetch_snapshot()

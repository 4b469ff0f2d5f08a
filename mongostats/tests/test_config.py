import pytest
from pydantic import ValidationError

from mongostats.config import Settings


def test_defaults_match_plugin_options(monkeypatch):
    for key in ("MONGO_HOST", "MONGO_PORT", "MONGO_DATABASE"):
        monkeypatch.delenv(key, raising=False)
    s = Settings(_env_file=None)
    assert s.mongo_host == "localhost"
    assert s.mongo_port == 27017
    assert s.mongo_database == "admin"
    assert s.target == "localhost:27017"


def test_blank_values_fall_back_to_defaults():
    s = Settings(_env_file=None, MONGO_HOST="  ", MONGO_PORT="", MONGO_DATABASE="")
    assert s.mongo_host == "localhost"
    assert s.mongo_port == 27017
    assert s.mongo_database == "admin"


def test_values_are_stripped():
    s = Settings(_env_file=None, MONGO_HOST=" db1 ", MONGO_PORT=" 27018 ")
    assert s.target == "db1:27018"


@pytest.mark.parametrize("port", ["abc", "0", "70000"])
def test_malformed_port_is_a_configuration_error(port):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, MONGO_PORT=port)


def test_interval_accepts_short_alias(monkeypatch):
    monkeypatch.delenv("COLLECTION_INTERVAL_SECONDS", raising=False)
    monkeypatch.setenv("COLLECTION_INTERVAL", "15")
    assert Settings(_env_file=None).collection_interval_seconds == 15

from pathlib import Path

import pytest
import yaml

from apcupsd_snmp.core.config import Config


ENV_VARS = [
    "APCUPSD_HOST", "APCUPSD_PORT", "APCUPSD_FETCH_INTERVAL",
    "SNMP_PORT", "SNMP_COMMUNITY", "LOG_LEVEL", "APCUPSD_SNMP_DEBUG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path: Path) -> None:
    config = Config.from_yaml(str(tmp_path / "missing.yaml"))
    assert config.apcupsd.host == "127.0.0.1"
    assert config.apcupsd.port == 3551
    assert config.apcupsd.fetch_interval == 20
    assert config.apcupsd.timeout == 10
    assert config.apcupsd.stale_factor == 10
    assert config.snmp.community == "public"
    assert config.snmp.base_oid == "1.3.6.1.4.1.318.1.1.1"
    assert config.logging.debug is False


def test_load_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "apcupsd": {"host": "ups.lan", "port": 3552, "fetch_interval": 5},
        "snmp": {"port": 161, "community": "ups"},
        "logging": {"level": "DEBUG"},
    }))

    config = Config.from_yaml(str(path))
    assert config.apcupsd.host == "ups.lan"
    assert config.apcupsd.port == 3552
    assert config.apcupsd.fetch_interval == 5
    assert config.apcupsd.timeout == 10
    assert config.snmp.port == 161
    assert config.snmp.community == "ups"
    assert config.logging.level == "DEBUG"


def test_empty_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert Config.from_yaml(str(path)).apcupsd.port == 3551


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APCUPSD_HOST", "10.0.0.5")
    monkeypatch.setenv("APCUPSD_PORT", "3600")
    monkeypatch.setenv("APCUPSD_FETCH_INTERVAL", "7.5")
    monkeypatch.setenv("SNMP_PORT", "10161")
    monkeypatch.setenv("SNMP_COMMUNITY", "secret")
    monkeypatch.setenv("APCUPSD_SNMP_DEBUG", "true")

    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({"apcupsd": {"host": "ups.lan"}}))

    for config in (Config.from_yaml(str(path)), Config.from_yaml(str(tmp_path / "missing.yaml"))):
        assert config.apcupsd.host == "10.0.0.5"
        assert config.apcupsd.port == 3600
        assert config.apcupsd.fetch_interval == 7.5
        assert config.snmp.port == 10161
        assert config.snmp.community == "secret"
        assert config.logging.debug is True


def test_round_trip(tmp_path: Path) -> None:
    config = Config()
    config.apcupsd.host = "ups.lan"
    config.snmp.community = "ups"
    path = tmp_path / "out.yaml"
    config.to_yaml(str(path))

    loaded = Config.from_yaml(str(path))
    assert loaded.apcupsd.host == "ups.lan"
    assert loaded.snmp.community == "ups"
    assert loaded.apcupsd.stale_factor == 10


def test_unknown_key_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({"apcupsd": {"hostname": "ups.lan"}}))
    with pytest.raises(TypeError):
        Config.from_yaml(str(path))

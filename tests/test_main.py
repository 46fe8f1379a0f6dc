import logging
import logging.handlers
import sys
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from apcupsd_snmp import main as main_module
from apcupsd_snmp.core.config import Config, LoggingConfig
from apcupsd_snmp.main import ApcupsdSNMPApplication, setup_logging

from conftest import FakeCollector


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_level(restore_logging) -> None:
    setup_logging(LoggingConfig(level="warning"))
    assert logging.getLogger().level == logging.WARNING

    setup_logging(LoggingConfig(level="WARNING", debug=True))
    assert logging.getLogger().level == logging.DEBUG

    setup_logging(LoggingConfig(level="nonsense"))
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_file(restore_logging, tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "bridge.log"
    setup_logging(LoggingConfig(file_path=str(log_file)))

    handlers = logging.getLogger().handlers
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)
    logging.getLogger("apcupsd_snmp.test").info("hello")
    for handler in handlers:
        handler.flush()
    assert "hello" in log_file.read_text()


def test_print_status(capsys, mocker: MockerFixture) -> None:
    app = ApcupsdSNMPApplication(Config())
    mocker.patch.object(app.cache, "collector", FakeCollector())

    app.print_status()
    out = capsys.readouterr().out
    assert "upsBasicIdentModel = OctetString: Back-UPS RS 500" in out
    assert ".1.3.6.1.4.1.318.1.1.1.1.1.1.0" in out


def test_print_status_without_data(capsys, mocker: MockerFixture) -> None:
    app = ApcupsdSNMPApplication(Config())
    mocker.patch.object(app.cache, "collector", FakeCollector([]))

    app.print_status()
    assert "No data from apcupsd" in capsys.readouterr().out


def test_status_flag_prints_and_exits(mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(sys, "argv", [
        "apcupsd-snmp", "-c", str(tmp_path / "none.yaml"), "-p", "10161",
        "--community", "ups", "--apcupsd-host", "ups.lan", "--apcupsd-port", "3552", "--status",
    ])
    mocker.patch.object(main_module, "setup_logging")
    print_status = mocker.patch.object(ApcupsdSNMPApplication, "print_status")
    run = mocker.patch.object(main_module.asyncio, "run")

    main_module.main()

    print_status.assert_called_once()
    run.assert_not_called()
    main_module.setup_logging.assert_called_once()


def test_main_wires_components(mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(sys, "argv", [
        "apcupsd-snmp", "-c", str(tmp_path / "none.yaml"), "-p", "10161",
        "--community", "ups", "--apcupsd-host", "ups.lan",
    ])
    mocker.patch.object(main_module, "setup_logging")
    app_cls = mocker.patch.object(main_module, "ApcupsdSNMPApplication")
    run = mocker.patch.object(main_module.asyncio, "run")
    mocker.patch.object(main_module, "serve", mocker.Mock(return_value=None))

    main_module.main()

    config = app_cls.call_args[0][0]
    assert config.snmp.port == 10161
    assert config.snmp.community == "ups"
    assert config.apcupsd.host == "ups.lan"
    assert config.apcupsd.port == 3551
    run.assert_called_once()


def test_generate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["apcupsd-snmp", "--generate-config"])
    main_module.main()
    assert Config.from_yaml(str(tmp_path / "config" / "config.yaml")).apcupsd.port == 3551

import logging
from pathlib import Path

import pytest

from usb_tui import cli


def test_parser_defaults():
    args = cli.build_parser().parse_args([])
    assert args.command == ["lsusb"]
    assert args.interval == pytest.approx(0.2)
    assert args.timeout == pytest.approx(3.0)
    assert args.config is None


def test_parser_splits_command_and_validates_interval():
    args = cli.build_parser().parse_args(["--command", "lsusb -t", "--interval", "0.5", "--config", "c.json"])
    assert args.command == ["lsusb", "-t"]
    assert args.interval == 0.5
    assert args.config == Path("c.json")
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--interval", "-1"])


def test_main_forwards_options_to_run(monkeypatch, tmp_path):
    calls = []

    def fake_run(config_path, **kwargs):
        calls.append((config_path, kwargs))
        return 0

    monkeypatch.setattr(cli, "run", fake_run)
    status = cli.main(["--config", str(tmp_path / "c.json"), "--log-file", str(tmp_path / "usb.log"), "-v"])

    assert status == 0
    config_path, kwargs = calls[0]
    assert config_path == tmp_path / "c.json"
    assert kwargs["command"] == ["lsusb"]
    assert logging.getLogger().level == logging.DEBUG


def test_main_reports_startup_failure(monkeypatch, tmp_path, capsys):
    def failing_run(config_path, **kwargs):
        raise OSError("terminal unavailable")

    monkeypatch.setattr(cli, "run", failing_run)
    status = cli.main(["--log-file", str(tmp_path / "usb.log")])

    assert status == 1
    assert "terminal unavailable" in capsys.readouterr().err

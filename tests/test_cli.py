"""
Tests for the command line entry point.
"""

import pytest

from hayesmodem.cli import main


def test_missing_config(tmp_path, capsys):
    assert main(["-c", str(tmp_path / "missing.yaml")]) == 1
    assert "not found" in capsys.readouterr().err


def test_invalid_config(tmp_path, capsys):
    path = tmp_path / "config.yaml"
    path.write_text("config:\n  port: 0\n")

    assert main(["-c", str(path)]) == 1
    assert "Port out of range" in capsys.readouterr().err


def test_port_in_use(tmp_path, capsys, monkeypatch):
    """Test that a failed bind exits with an error instead of a traceback."""
    import socket

    monkeypatch.delenv("HAYESMODEM_PORT", raising=False)
    busy = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    busy.bind(("127.0.0.1", 0))
    busy.listen()
    try:
        port = busy.getsockname()[1]
        path = tmp_path / "config.yaml"
        path.write_text("config:\n  host: 127.0.0.1\n")

        assert main(["-c", str(path), "-p", str(port), "--no-audio"]) == 1
        assert "cannot listen" in capsys.readouterr().err
    finally:
        busy.close()


def test_help(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--help"])

    assert exc.value.code == 0
    assert "hayes-modem" in capsys.readouterr().out

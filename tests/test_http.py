from __future__ import annotations

import os
from unittest.mock import patch

import httpx

from research_copilot.services.http import async_client, sanitize_ssl_keylogfile


def test_sanitize_ssl_keylogfile_unsets_unwritable_path():
    with patch.dict(os.environ, {"SSLKEYLOGFILE": "/nonexistent-dir/keylog.log"}, clear=False):
        sanitize_ssl_keylogfile()
        assert "SSLKEYLOGFILE" not in os.environ


def test_sanitize_ssl_keylogfile_unsets_path_open_refuses():
    with patch.dict(os.environ, {"SSLKEYLOGFILE": "/tmp/keylog.log"}, clear=False):
        with patch("pathlib.Path.exists", return_value=True):
            with patch("builtins.open", side_effect=PermissionError):
                sanitize_ssl_keylogfile()
        assert "SSLKEYLOGFILE" not in os.environ


def test_sanitize_ssl_keylogfile_keeps_usable_path():
    with patch.dict(os.environ, {"SSLKEYLOGFILE": "/tmp/keylog.log"}, clear=False):
        with patch("pathlib.Path.exists", return_value=True):
            with patch("builtins.open"):
                sanitize_ssl_keylogfile()
        assert os.environ.get("SSLKEYLOGFILE") == "/tmp/keylog.log"


def test_async_client_caps_connect_timeout():
    client = async_client(120)

    assert isinstance(client, httpx.AsyncClient)
    assert client.timeout.read == 120
    assert client.timeout.connect == 10.0

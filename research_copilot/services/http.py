from __future__ import annotations

import os
from pathlib import Path

import httpx


def sanitize_ssl_keylogfile() -> None:
    """Unset SSLKEYLOGFILE when it points to an unusable path.

    Some environments set this globally for TLS debugging. If the path is
    inaccessible, httpx (and the SDKs built on it) crash while creating the
    SSL context, which would take every provider down with it.
    """
    keylog_path = os.getenv("SSLKEYLOGFILE", "").strip()
    if not keylog_path:
        return

    try:
        path = Path(keylog_path)
        if not path.parent.exists():
            os.environ.pop("SSLKEYLOGFILE", None)
            return
        # Validate writability without truncating existing files.
        with open(path, "a", encoding="utf-8"):
            pass
    except OSError:
        os.environ.pop("SSLKEYLOGFILE", None)


def async_client(timeout: float) -> httpx.AsyncClient:
    """AsyncClient for one upstream call; the caller owns closing it."""
    sanitize_ssl_keylogfile()
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)))

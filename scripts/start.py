#!/usr/bin/env python3
"""
Container entrypoint: run the release phase, then exec gunicorn serving app.wsgi:app.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 8080


def listen_port() -> int:
    raw = (os.environ.get("PORT") or "").strip()
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        port = 0
    if not 1 <= port <= 65535:
        raise SystemExit(f"Invalid PORT {raw!r}: expected an integer between 1 and 65535.")
    return port


def gunicorn_argv(port: int) -> list[str]:
    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    port = listen_port()

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    argv = gunicorn_argv(port)
    print(f"Starting {' '.join(argv)}", flush=True)
    # exec so gunicorn receives container signals directly
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()

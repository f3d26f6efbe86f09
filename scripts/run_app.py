#!/usr/bin/env python3
"""Install the project if needed, check the environment, then serve the API."""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
ENV_FILE = ROOT_DIR / ".env"
UVICORN_APP = "src.news_aggregator.api.server:app"
REQUIRED_ENV = ("GNEWS_API_KEY", "JWT_SECRET_KEY")


def install_project() -> None:
    print(f"[deps] Installing {ROOT_DIR} in editable mode...")
    subprocess.check_call(  # noqa: S603 - controlled input
        [sys.executable, "-m", "pip", "install", "-e", str(ROOT_DIR)], cwd=ROOT_DIR
    )


def missing_env_vars() -> list[str]:
    """Required variables set neither in the environment nor in .env."""
    env_file_text = ENV_FILE.read_text(encoding="utf-8") if ENV_FILE.exists() else ""
    return [
        var for var in REQUIRED_ENV
        if not os.environ.get(var) and f"{var}=" not in env_file_text
    ]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Start the News Aggregator API under uvicorn.")
    parser.add_argument("--install", action="store_true", help="Run 'pip install -e .' first.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Enable uvicorn auto-reload.")
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if args.install:
        try:
            install_project()
        except subprocess.CalledProcessError as exc:
            print(f"[deps] Installation failed: {exc}")
            return 1

    missing = missing_env_vars()
    if missing:
        print(f"[env] WARNING: missing {', '.join(missing)}; news or auth endpoints may fail.")

    import uvicorn

    os.chdir(ROOT_DIR)
    uvicorn.run(UVICORN_APP, host=args.host, port=args.port, reload=args.reload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""
Development runner for the Agent Discussion API.

Usage:
    python run_dev.py            # host/port from settings, auto-reload on
    python run_dev.py --no-reload
"""

import sys
import argparse
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv()

from config.settings import get_settings


def main():
    parser = argparse.ArgumentParser(description="Run the Agent Discussion API")
    parser.add_argument("--host", help="Bind address (default: API_HOST)")
    parser.add_argument("--port", type=int, help="Port (default: API_PORT)")
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    args = parser.parse_args()

    settings = get_settings()
    host = args.host or settings.api_host
    port = args.port or settings.api_port

    print(f"""
Agent Discussion API
  Server:   http://localhost:{port}
  API Docs: http://localhost:{port}/docs
  LLM:      {"claude (" + settings.anthropic_model + ")" if settings.anthropic_api_key else "mock (no ANTHROPIC_API_KEY)"}

Press Ctrl+C to stop.
""")

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=settings.debug and not args.no_reload,
        app_dir=str(PROJECT_ROOT),
    )


if __name__ == "__main__":
    main()

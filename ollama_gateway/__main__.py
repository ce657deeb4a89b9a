"""Run the gateway with uvicorn: ``python -m ollama_gateway``."""

from __future__ import annotations

import argparse

import uvicorn

from .helpers.settings import load_config


def main() -> int:
    parser = argparse.ArgumentParser(description="Ollama WebSocket gateway")
    parser.add_argument("--host", default=None, help="Bind address (defaults to HOST)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (defaults to PORT)")
    parser.add_argument("--data-dir", default=None, help="Registry directory (defaults to DATA_DIR)")
    args = parser.parse_args()

    config = load_config(host=args.host, port=args.port, data_dir=args.data_dir)

    from .server import create_app  # noqa: PLC0415

    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""Stream one prompt through the gateway from the command line.

Usage:
  python -m ollama_gateway.client --client-id ID --private-key keys/laptop_private.pem "Why is the sky blue?"
  python -m ollama_gateway.client --client-id ID --private-key key.pem --models

Env:
  GATEWAY_WS_URL=ws://127.0.0.1:3000/ws
"""

from __future__ import annotations

import sys
import asyncio
import argparse
from pathlib import Path

from ..errors import GatewayClientError
from ..logging import configure_logging
from ..config.client import GATEWAY_WS_URL
from .session import GatewayClient


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send a prompt to the Ollama gateway and stream the reply")
    parser.add_argument("prompt", nargs="*", help="Prompt text (omit with --models)")
    parser.add_argument("--url", default=GATEWAY_WS_URL, help="Gateway WebSocket URL (defaults to GATEWAY_WS_URL)")
    parser.add_argument("--client-id", required=True, help="Registered client id")
    parser.add_argument("--private-key", required=True, help="Path to the client's PEM private key")
    parser.add_argument("--algorithm", default="SHA256", help="Signature digest the client was registered with")
    parser.add_argument("--model", default=None, help="Model to use (defaults to the server's)")
    parser.add_argument("--models", action="store_true", help="List installed models and exit")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    client = GatewayClient(
        args.url,
        client_id=args.client_id,
        private_key=Path(args.private_key).read_text(encoding="utf-8"),
        signature_algorithm=args.algorithm,
    )
    async with client:
        if args.models:
            for model in await client.list_models():
                print(f"{model.get('name')}\t{model.get('size') or ''}")
            return 0

        async for token in client.generate(" ".join(args.prompt), model=args.model):
            sys.stdout.write(token)
            sys.stdout.flush()
        sys.stdout.write("\n")
        result = client.last_result or {}
        print(
            f"[client] {result.get('total_tokens', 0)} tokens in {result.get('elapsed_ms', 0)} ms",
            file=sys.stderr,
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if not args.models and not args.prompt:
        print("[client] a prompt is required unless --models is given", file=sys.stderr)
        return 2
    configure_logging()
    try:
        return asyncio.run(_run(args))
    except GatewayClientError as exc:
        print(f"[client] {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())

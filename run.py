#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import socket
import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parent
BACKEND_DIR = REPO_ROOT / "backend"

# Allow running from a plain checkout without `pip install -e .`
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))


def _print(msg: str) -> None:
    sys.stdout.write(msg.rstrip() + "\n")
    sys.stdout.flush()


def _port_is_free(host: str, port: int) -> bool:
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        s.bind((host, port))
        return True
    except OSError:
        return False
    finally:
        s.close()


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    if not _port_is_free(args.host, args.port):
        _print(f"Port {args.port} is already in use on {args.host}. Pick another one with --port.")
        return 1
    _print(f"Prompt Kun: http://{args.host}:{args.port}/")
    uvicorn.run(
        "prompt_kun.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    from prompt_kun.config import get_settings
    from prompt_kun.main import build_manager
    from prompt_kun.services.prompt_service import PromptService, UserFacingError

    settings = get_settings()
    service = PromptService(build_manager(settings), use_provider_glosses=args.provider_gloss or settings.provider_glosses)
    try:
        cards = asyncio.run(service.generate_cards(args.keyword, args.style))
    except UserFacingError as e:
        _print(f"エラー: {e}")
        return 1

    if args.json:
        _print(json.dumps([{"prompt": c.prompt, "gloss": c.gloss} for c in cards], ensure_ascii=False, indent=2))
        return 0
    for i, card in enumerate(cards, 1):
        _print(f"{i:>2}. {card.prompt}")
        _print(f"    {card.gloss}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    from prompt_kun.config import config_info, get_settings, validate_api_keys

    settings = get_settings()
    info = config_info(settings)
    report = validate_api_keys(settings)
    _print("Prompt Kun - system status:")
    for name in ("gemini", "openai", "anthropic"):
        entry = info[name]
        if not entry["enabled"]:
            state = "disabled"
        elif entry["has_key"]:
            state = "ok" if name in report["valid"] else "key looks malformed"
        else:
            state = "no API key"
        _print(f"- {name}: {state}")
    _print(f"- system: {json.dumps(info['system'])}")
    if not report["valid"]:
        _print("No usable provider. Set GEMINI_API_KEY (or OPENAI_API_KEY / ANTHROPIC_API_KEY) in backend/.env")
        return 1
    return 0


def main() -> int:
    ap = argparse.ArgumentParser(description="Prompt Kun: Japanese keyword -> Stable Diffusion prompts")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the web UI and proxy API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    serve.set_defaults(func=cmd_serve)

    gen = sub.add_parser("generate", help="Generate prompts for one keyword and print them")
    gen.add_argument("keyword")
    gen.add_argument("--style", default="sd15", choices=["sd15", "illustrious"])
    gen.add_argument("--json", action="store_true", help="Print JSON instead of text")
    gen.add_argument("--provider-gloss", action="store_true", help="Ask the LLM for glosses the dictionary cannot produce")
    gen.set_defaults(func=cmd_generate)

    status = sub.add_parser("status", help="Show which providers are configured")
    status.set_defaults(func=cmd_status)

    args = ap.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from .config import settings
from .container import get_orchestrator
from .errors import GatewayError
from .logging_utils import get_logger
from .models import StyleSettings
from .services import GenerationRequest


logger = get_logger(__name__)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("tts_gateway.main:app", host=args.host, port=args.port)
    return 0


def _synthesize(args: argparse.Namespace) -> int:
    req = GenerationRequest(
        text=args.text,
        voice=args.voice,
        principal_id=args.user_id or settings.preview_principal_id,
        declared_chars=len(args.text),
        style=StyleSettings(expression=args.expression, pitch=args.pitch, speed=args.speed),
    )
    try:
        result = asyncio.run(get_orchestrator().generate(req))
    except GatewayError as exc:
        logger.error("Synthesis failed: %s", exc)
        return 1

    out_path = Path(args.out)
    out_path.write_bytes(result.container)
    logger.info(
        "Wrote %s (%d bytes, daily usage %d/%d)",
        out_path,
        len(result.container),
        result.usage.daily_chars_used,
        result.usage.ceiling,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="tts-gateway CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP gateway")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)
    serve.set_defaults(func=_serve)

    synth = sub.add_parser("synthesize", help="Synthesize text once and write a .wav file")
    synth.add_argument("--text", required=True, help="Text to synthesize")
    synth.add_argument("--out", required=True, help="Output audio file path (.wav)")
    synth.add_argument("--voice", default="Kore", help="Prebuilt voice name")
    synth.add_argument("--user-id", default=None, help="Principal to bill (default: preview, unmetered)")
    synth.add_argument("--expression", default="Natural", help="Delivery style, e.g. Cheerful")
    synth.add_argument("--pitch", type=float, default=1.0, help="Pitch multiplier [0.5, 1.5]")
    synth.add_argument("--speed", type=float, default=1.0, help="Speed multiplier [0.5, 2.0]")
    synth.set_defaults(func=_synthesize)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())

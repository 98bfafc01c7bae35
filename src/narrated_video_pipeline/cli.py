"""
Command line entry point: ``nvp serve|script|srt|render``.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from .config import get_settings
from .errors import PipelineError
from .schemas import ScriptRequest, VideoRequest
from .services.pipeline import VideoJobRunner
from .services.script_writer import ScriptWriter
from .services.subtitle_builder import build_srt


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="nvp", description="Narrated video pipeline")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    script = subparsers.add_parser("script", help="Generate a script and its subtitles with the language model")
    script.add_argument("topic")
    script.add_argument("--duration", type=int, default=settings.default_duration)
    script.add_argument("--style", default="")
    script.add_argument("--voice", default="")
    script.add_argument("--unlimited", action="store_true", help="Use the larger model tier")
    script.add_argument("--srt-out", type=Path, help="Also write the subtitles to this file")

    srt = subparsers.add_parser("srt", help="Build subtitles from a script file")
    srt.add_argument("script_file", type=Path)
    srt.add_argument("--duration", type=int, default=settings.default_duration)
    srt.add_argument("--policy", choices=["redistribute", "clamp_last"], default=settings.subtitle_overflow_policy)
    srt.add_argument("-o", "--output", type=Path, help="Output file (stdout if omitted)")

    render = subparsers.add_parser("render", help="Compose a full video from a script file")
    render.add_argument("script_file", type=Path)
    render.add_argument("-o", "--output", type=Path, required=True)
    render.add_argument("--srt", type=Path, help="Use these subtitles instead of building them")
    render.add_argument("--duration", type=int, default=settings.default_duration)
    render.add_argument("--voice", default="")
    render.add_argument("--style", default="", help="Background footage search hint")

    return parser.parse_args(argv)


async def _generate_script(args: argparse.Namespace) -> int:
    writer = ScriptWriter()
    result = await writer.generate(
        ScriptRequest(
            topic=args.topic,
            duration=args.duration,
            style=args.style,
            voice=args.voice,
            unlimited=args.unlimited,
        )
    )
    print(result.script)
    if args.srt_out:
        args.srt_out.write_text(result.srt, encoding="utf-8")
        print(f"Subtitles written to {args.srt_out}", file=sys.stderr)
    return 0


async def _render(args: argparse.Namespace) -> int:
    request = VideoRequest(
        script=args.script_file.read_text(encoding="utf-8"),
        srt=args.srt.read_text(encoding="utf-8") if args.srt else None,
        voice=args.voice,
        duration=args.duration,
        style=args.style,
    )
    runner = VideoJobRunner()
    try:
        video = await runner.produce(request)
        print(f"Composed job: {video.job.job_id}", file=sys.stderr)
        stream = video.stream()
        try:
            with open(args.output, "wb") as handle:
                async for chunk in stream:
                    handle.write(chunk)
        finally:
            await stream.aclose()
    finally:
        await runner.aclose()

    print(f"Video written to {args.output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.command == "serve":
        import uvicorn

        from .api.app import app

        uvicorn.run(app, host=args.host, port=args.port, log_level="info")
        return 0

    try:
        if args.command == "srt":
            content = build_srt(
                args.script_file.read_text(encoding="utf-8"),
                args.duration,
                policy=args.policy,
                min_span=get_settings().subtitle_min_span,
            )
            if args.output:
                args.output.write_text(content, encoding="utf-8")
            else:
                sys.stdout.write(content)
            return 0
        if args.command == "script":
            return asyncio.run(_generate_script(args))
        if args.command == "render":
            return asyncio.run(_render(args))
    except PipelineError as e:
        print(f"❌ {e.code}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    return 2


if __name__ == "__main__":
    sys.exit(main())

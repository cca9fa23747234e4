#!/usr/bin/env python
"""Command-line interface for Kaeva fact-checking.

This module runs the fact-check pipeline in-process, without the HTTP API,
and exposes a few helpers for inspecting the source tier table.
"""

import argparse
import asyncio
import json
import sys
import uuid

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from kaeva import __version__
from kaeva.config import get_settings
from kaeva.models import VerdictLabel, VerdictResult
from kaeva.pipeline import FactCheckPipeline
from kaeva.services.source_tiers import UNRANKED_LABEL, default_table
from kaeva.utils.exceptions import KaevaError
from kaeva.utils.logging import configure_logging

MAX_CLAIM_DISPLAY_LENGTH = 100

VERDICT_STYLES = {
    VerdictLabel.TRUE: "green",
    VerdictLabel.MOSTLY_TRUE: "green",
    VerdictLabel.FALSE: "red",
    VerdictLabel.MOSTLY_FALSE: "red",
    VerdictLabel.MISLEADING: "magenta",
    VerdictLabel.UNVERIFIED: "blue",
    VerdictLabel.SATIRE: "cyan",
    VerdictLabel.OPINION: "yellow",
}


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Kaeva - grounded fact-checking for claims and media",
        epilog='Example: kaeva analyze --claim "The earth is flat"',
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    analyze_parser = subparsers.add_parser("analyze", help="Fact-check a claim and/or media URL")
    analyze_parser.add_argument("-c", "--claim", default="", help="Claim text to check")
    analyze_parser.add_argument("-m", "--media-url", help="URL of an image, video or audio file")
    analyze_parser.add_argument(
        "-p", "--platform", help="Compression profile of the media (default: clean)"
    )
    analyze_parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)",
    )

    classify_parser = subparsers.add_parser("classify", help="Show the source tier of URLs")
    classify_parser.add_argument("urls", nargs="+", help="URLs to classify")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind host (default from settings)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default from settings)")

    subparsers.add_parser("version", help="Show version information")

    return parser.parse_args(argv)


def truncate_text(text: str, max_length: int = MAX_CLAIM_DISPLAY_LENGTH) -> str:
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def format_result_as_text(result: VerdictResult) -> Panel:
    """Render a verdict result as a rich panel."""
    style = VERDICT_STYLES.get(result.verdict, "white")
    lines = [
        f"[bold {style}]Verdict: {result.verdict.value}[/] "
        f"(Confidence: {result.confidence:.0%}, {result.recommendation.value})",
    ]
    if result.explanation:
        lines.append(f"\nExplanation: {escape(result.explanation)}")
    if result.confidence_breakdown:
        parts = ", ".join(f"{k}={v:.2f}" for k, v in result.confidence_breakdown.items())
        lines.append(f"\nBreakdown: {parts}")
    if result.media_analysis is not None:
        media = result.media_analysis
        score = "n/a" if media.authenticity_score is None else f"{media.authenticity_score:.2f}"
        lines.append(f"\nMedia: {media.type.value}, authenticity {score}")
        if media.notes:
            lines.append(f"Notes: {escape(media.notes)}")
    if result.sources:
        lines.append("\nSources:")
        for source in result.sources:
            label = escape(f"[{source.tier_label}]")
            lines.append(f"- {label} {escape(source.title or source.url)} ({source.stance.value})")
            if source.url:
                lines.append(f"  {escape(source.url)}")

    title = escape(truncate_text(result.claim)) if result.claim else result.input_type
    return Panel("\n".join(lines), title=title, expand=False, padding=(1, 2))


async def run_analyze_command(args, console: Console) -> int:
    """Execute the analyze command."""
    if not args.claim.strip() and not args.media_url:
        console.print("[red]Please provide --claim and/or --media-url[/]")
        return 1

    settings = get_settings()
    pipeline = FactCheckPipeline(settings)
    job_id = str(uuid.uuid4())
    try:
        result = await pipeline.run(job_id, args.claim, args.media_url, args.platform)
        if result is None:
            record = await pipeline.job_store.get(job_id)
            message = record.error if record else "unknown error"
            console.print(f"[red]Analysis failed: {escape(message or '')}[/]")
            return 1
    finally:
        await pipeline.job_store.close()

    if args.format == "json":
        print(json.dumps(result.to_wire(), indent=2))
    else:
        console.print(format_result_as_text(result))
    return 0


def run_classify_command(args, console: Console) -> int:
    """Execute the classify command."""
    table = default_table()
    output = Table(title="Source tiers")
    output.add_column("URL")
    output.add_column("Tier")
    output.add_column("Label")
    output.add_column("Weight")
    for url in args.urls:
        info = table.classify(url)
        if info is None:
            output.add_row(escape(url), "-", UNRANKED_LABEL, "-")
        else:
            output.add_row(escape(url), str(info.tier), info.label, f"{info.weight:.2f}")
    console.print(output)
    return 0


def run_serve_command(args) -> int:
    """Execute the serve command."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "kaeva.main:app",
        host=args.host or settings.api.host,
        port=args.port or settings.api.port,
    )
    return 0


def run_version_command(args, console: Console) -> int:
    """Execute the version command."""
    console.print(f"Kaeva fact-check CLI version {__version__}")
    return 0


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)
    console = Console()

    configure_logging(level="debug" if args.debug else "warning", json_logging=False)

    try:
        if args.command == "analyze":
            return asyncio.run(run_analyze_command(args, console))
        elif args.command == "classify":
            return run_classify_command(args, console)
        elif args.command == "serve":
            return run_serve_command(args)
        elif args.command == "version":
            return run_version_command(args, console)
        else:
            console.print("Please specify a command. Use --help for available commands.")
            return 1

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation interrupted by user[/]")
        return 130
    except KaevaError as e:
        console.print(f"[red]Error: {e.message} (Code: {e.code})[/]")
        if e.details:
            console.print(f"Details: {e.details}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

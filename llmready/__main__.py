"""CLI entry point: python -m llmready <command> [options]"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console

from llmready.cache import FileCacheStore, InMemoryCacheStore
from llmready.errors import NotFoundError
from llmready.pipeline import RenderPipeline
from llmready.repository import InMemoryContentSource, load_content_file
from llmready.settings import LOG_FORMAT, LOG_LEVEL, load_config

logger = logging.getLogger(__name__)

_SIZE_UNITS = ("B", "KB", "MB", "GB")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llmready",
        description=(
            "Serve Markdown renditions of site content plus llms.txt indexes.\n"
            "Cache maintenance, bulk pre-rendering and status reporting."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", default="llmready.yaml", metavar="FILE",
                        help="YAML config with site: and settings: sections (default: llmready.yaml)")
    parser.add_argument("--content", default=None, metavar="FILE",
                        help="JSON export of content items")
    parser.add_argument("--cache-dir", default=None, metavar="DIR",
                        help="Persist cached Markdown under DIR (default: in-process only)")
    parser.add_argument("--log-level", default=LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        metavar="{DEBUG,INFO,WARNING,ERROR}",
                        help=f"Logging level (default: {LOG_LEVEL})")

    sub = parser.add_subparsers(dest="command", required=True)

    flush = sub.add_parser("flush", help="Flush cached Markdown")
    target = flush.add_mutually_exclusive_group()
    target.add_argument("--id", type=int, default=None, metavar="N",
                        help="Flush a single item by id")
    target.add_argument("--type", default=None, metavar="TYPE",
                        help="Flush every published item of TYPE")

    generate = sub.add_parser("generate", help="Pre-render Markdown for eligible items")
    generate.add_argument("--type", default=None, metavar="TYPE",
                          help="Only generate items of TYPE")
    generate.add_argument("--force", action="store_true", default=False,
                          help="Regenerate even when already cached")

    sub.add_parser("status", help="Show eligible counts and cache usage")

    preview = sub.add_parser("preview", help="Print the Markdown document for an item")
    preview.add_argument("id", type=int, metavar="ID")

    serve = sub.add_parser("serve", help="Run the HTTP endpoints (requires uvicorn)")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def format_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in _SIZE_UNITS:
        if size < 1024 or unit == _SIZE_UNITS[-1]:
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{num_bytes} B"


def format_ttl(seconds: int) -> str:
    if seconds <= 0:
        return "disabled"
    hours, rem = divmod(seconds, 3600)
    if hours and not rem:
        return f"{hours} hour" + ("s" if hours != 1 else "")
    minutes = seconds // 60
    return f"{minutes} min" if minutes else f"{seconds} s"


def build_pipeline(
    config: str | Path | None,
    content: str | Path | None,
    cache_dir: str | Path | None = None,
) -> RenderPipeline:
    site, settings = load_config(config)
    cache = FileCacheStore(cache_dir) if cache_dir else InMemoryCacheStore()
    if content:
        source = load_content_file(content, home_url=site.home_url)
    else:
        source = InMemoryContentSource(home_url=site.home_url)
    return RenderPipeline(
        settings, site, source, cache, settings_path=config,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cmd_flush(pipeline: RenderPipeline, args: argparse.Namespace, console: Console) -> int:
    if args.id is not None:
        pipeline.flush_cache(item_id=args.id)
        console.print(f"[green]Success:[/green] Cache flushed for item {args.id}.")
        return 0
    if args.type:
        count = pipeline.flush_cache(item_type=args.type)
        if count == 0:
            console.print(f"[yellow]Warning:[/yellow] No published items found for type {args.type!r}.")
            return 0
        console.print(f"[green]Success:[/green] Cache flushed for {count} items of type {args.type!r}.")
        return 0
    pipeline.flush_cache()
    console.print("[green]Success:[/green] All cache flushed.")
    return 0


def _cmd_generate(pipeline: RenderPipeline, args: argparse.Namespace, console: Console) -> int:
    report = pipeline.generate(args.type, force=args.force)
    if report.generated + report.skipped + len(report.failed) == 0:
        console.print("[yellow]Warning:[/yellow] No published items found.")
        return 0
    console.print(
        f"[green]Done.[/green] Generated: {report.generated}, Skipped: {report.skipped}"
        + (f", Failed: {len(report.failed)}" if report.failed else "")
        + ".",
    )
    return 1 if report.failed else 0


def _cmd_status(pipeline: RenderPipeline, args: argparse.Namespace, console: Console) -> int:
    from rich import box
    from rich.table import Table

    report = pipeline.status()

    tbl = Table(title="[bold cyan]llmready status[/bold cyan]", box=box.SIMPLE_HEAVY)
    tbl.add_column("Setting", style="bold")
    tbl.add_column("Value", justify="right")
    tbl.add_row("Enabled types", ", ".join(report.enabled_types) or "-")
    for item_type, count in report.counts.items():
        tbl.add_row(f"Eligible {item_type}", str(count))
    tbl.add_row("Eligible total", str(report.total_items))
    tbl.add_row("Cache entries", str(report.cache_entries))
    tbl.add_row("Total cache size", format_size(report.cache_bytes))
    tbl.add_row("Cache TTL", format_ttl(report.cache_ttl))
    console.print(tbl)
    return 0


def _cmd_preview(pipeline: RenderPipeline, args: argparse.Namespace, console: Console) -> int:
    sys.stdout.write(pipeline.preview(args.id))
    return 0


def _cmd_serve(pipeline: RenderPipeline, args: argparse.Namespace, console: Console) -> int:
    try:
        import uvicorn
    except ImportError:
        console.print("[red]ERROR:[/red] uvicorn is not installed. Run: pip install uvicorn")
        return 1

    from llmready.web import create_app

    uvicorn.run(create_app(pipeline), host=args.host, port=args.port)
    return 0


_COMMANDS = {
    "flush": _cmd_flush,
    "generate": _cmd_generate,
    "status": _cmd_status,
    "preview": _cmd_preview,
    "serve": _cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    console = Console()

    if args.content and not Path(args.content).exists():
        console.print(f"[red]ERROR:[/red] Content file not found: {args.content}")
        return 1

    pipeline = build_pipeline(args.config, args.content, args.cache_dir)
    try:
        return _COMMANDS[args.command](pipeline, args, console)
    except NotFoundError as exc:
        console.print(f"[red]ERROR:[/red] {exc.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import logging
import signal
import threading
from typing import Sequence

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from cdnsync.config import (
    DEFAULT_PROVIDER,
    load_settings,
    save_settings,
    settings_path,
    starter_settings,
)
from cdnsync.errors import ConfigError
from cdnsync.events import EventLevel
from cdnsync.filters import build_path_filter
from cdnsync.models import Asset
from cdnsync.registry import available_providers, init_provider
from cdnsync.scanner import scan_assets
from cdnsync.sync import empty_bucket, upload_assets


app = typer.Typer(help="Sync build assets to an object-storage bucket behind a CDN.")
console = Console()

LEVEL_STYLES: dict[str, str] = {
    "info": "cyan",
    "success": "green",
    "error": "red",
}

PROVIDER_OPTION_HELP = f"Provider to use ({', '.join(available_providers())}). Defaults to the settings `default`."


class ConsoleSink:
    def __init__(self, console: Console) -> None:
        self._console = console

    def emit(self, level: EventLevel, message: str) -> None:
        # Text() keeps square brackets in file paths from being read as markup.
        self._console.print(Text(message, style=LEVEL_STYLES.get(level, "")))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # botocore is chatty at DEBUG.
    logging.getLogger("botocore").setLevel(logging.INFO if verbose else logging.WARNING)


def _confirm_plan(plan: Sequence[Asset]) -> bool:
    return typer.confirm(f"Do you wish to continue with {len(plan)} file(s)?", default=False)


@app.command()
def init(
    provider: str = typer.Option(DEFAULT_PROVIDER, "--provider", help=PROVIDER_OPTION_HELP),
    bucket: str | None = typer.Option(None, "--bucket", help="Bucket (or repo id) to upload into."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing settings file."),
) -> None:
    """Write a starter .cdnsync.json in the current directory."""
    if provider not in available_providers():
        console.print(f"[red]Unknown provider '{provider}'.[/red]")
        raise typer.Exit(code=1)

    path = settings_path()
    if path.exists() and not force:
        console.print(f"[yellow]Settings already exist at {path}. Use --force to overwrite.[/yellow]")
        raise typer.Exit(code=1)

    save_settings(starter_settings(provider, bucket))
    console.print(f"[green]Initialized cdnsync[/green] at {path}")
    console.print(
        "Credentials are read from the environment "
        "(AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY or HF_TOKEN) unless set under `credentials`."
    )


def _push(provider_name: str | None, review: bool, workers: int, verbose: bool) -> int:
    _configure_logging(verbose)
    try:
        settings = load_settings()
        provider = init_provider(settings.raw, name=provider_name or settings.default_provider)
    except (FileNotFoundError, ConfigError) as exc:
        console.print(f"[red]{exc}[/red]")
        return 1

    root = settings.root_path()
    if not root.exists():
        console.print(f"[red]Configured root does not exist: {root}[/red]")
        return 1

    with console.status(f"Scanning {root} ..."):
        assets = scan_assets(root, build_path_filter(settings.include, settings.exclude))
    console.print(f"Found [bold]{len(assets)}[/bold] local file(s) under {root}")

    cancel = threading.Event()

    def _request_stop(signum, frame) -> None:
        console.print("[yellow]Stopping after the current upload...[/yellow]")
        cancel.set()
        # A second Ctrl-C aborts immediately.
        signal.signal(signal.SIGINT, previous_handler)

    previous_handler = signal.signal(signal.SIGINT, _request_stop)
    try:
        summary = upload_assets(
            provider,
            assets,
            sink=ConsoleSink(console),
            confirm=_confirm_plan if review else None,
            cancel=cancel,
            workers=max(1, workers),
            mode=settings.compare,  # type: ignore[arg-type]
        )
    except KeyboardInterrupt:
        console.print("[yellow]Push interrupted.[/yellow] The bucket may hold a partial upload.")
        return 130
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    console.print(
        f"Uploaded: {summary.uploaded_count} | Skipped unchanged: {summary.skipped_count}"
    )
    if summary.cancelled:
        return 130
    return 0 if summary.ok else 1


@app.command()
def push(
    provider: str | None = typer.Option(None, "--provider", help=PROVIDER_OPTION_HELP),
    review: bool = typer.Option(
        False,
        "--review",
        help="List the files to upload and ask for confirmation first.",
    ),
    workers: int = typer.Option(1, "--workers", min=1, help="Parallel uploads."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """Upload new and changed assets to the bucket."""
    raise typer.Exit(code=_push(provider, review, workers, verbose))


@app.command()
def empty(
    provider: str | None = typer.Option(None, "--provider", help=PROVIDER_OPTION_HELP),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """Delete every object in the bucket."""
    _configure_logging(verbose)
    try:
        settings = load_settings()
        selected = init_provider(settings.raw, name=provider or settings.default_provider)
    except (FileNotFoundError, ConfigError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if not yes and not typer.confirm(
        f"Delete every object in '{selected.bucket_name}'?", default=False
    ):
        console.print("[yellow]Nothing deleted.[/yellow]")
        raise typer.Exit(code=0)

    ok = empty_bucket(selected, sink=ConsoleSink(console))
    raise typer.Exit(code=0 if ok else 1)


@app.command()
def url(
    path: str = typer.Argument(..., help="Asset path relative to the bucket root."),
    provider: str | None = typer.Option(None, "--provider", help=PROVIDER_OPTION_HELP),
) -> None:
    """Print the public URL for an asset."""
    try:
        settings = load_settings()
        selected = init_provider(settings.raw, name=provider or settings.default_provider)
        console.print(selected.url_for(path), markup=False, highlight=False, soft_wrap=True)
    except (FileNotFoundError, ConfigError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

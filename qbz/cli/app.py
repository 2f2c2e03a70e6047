"""
Defines the command-line interface for the client layer using Typer.
"""

import asyncio
import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from qbz import __version__
from qbz.api.client import QobuzClient
from qbz.exceptions import ConfigurationError, NoQualityAvailableError
from qbz.media.downloader import AudioDownloader
from qbz.media.prefetcher import Prefetcher
from qbz.models.config import ClientConfig
from qbz.models.quality import Quality
from qbz.storage.audio_cache import AudioCache
from qbz.storage.config_manager import ConfigManager

from .formatters import (
    print_cache_stats,
    print_config,
    print_search_results,
    print_stream_url,
    print_tokens,
)

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
app = typer.Typer(
    name="qbz",
    help="Authenticated Qobuz client with an in-memory audio cache.",
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

SEARCH_KINDS = ("albums", "tracks", "artists", "playlists")
QUALITY_HELP = (
    "Set quality. 1: MP3 320, 2: CD (16/44.1), 3: Hi-Res (24/96), 4: Hi-Res+ (24/192)."
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "qbz"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(quality: Optional[int] = None) -> ClientConfig:
    if not CONFIG_FILE.is_file():
        return ClientConfig(quality=quality or Quality.CD.value)
    return ConfigManager(CONFIG_FILE).load_config({"quality": quality})


async def _login(client: QobuzClient, config: ClientConfig) -> None:
    if config.token:
        await client.login_with_token(config.token)
    elif config.email and config.password:
        await client.login(config.email, config.password)
    else:
        raise ConfigurationError("No credentials configured. Run 'qbz init' first.")


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Qobuz client CLI"""
    if version:
        console.print(f"[bold]qbz[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("qbz").setLevel(log_level)

    if show_config:
        print_config(_load_config())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    email: str = typer.Argument(..., help="Qobuz account email."),
    password: str = typer.Argument(..., help="Qobuz account password."),
    quality: int = typer.Option(2, "-q", "--quality", help=QUALITY_HELP),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite existing credentials without asking."
    ),
):
    """Save Qobuz credentials to the configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_new_config(
        {
            "email": email,
            "password": hashlib.md5(password.encode()).hexdigest(),  # noqa: S324
            "quality": quality,
        }
    )
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def tokens():
    """Extract the app id and candidate secrets from the web player."""

    async def _tokens_async():
        async with QobuzClient(_load_config()) as client:
            console.print("[cyan]Fetching web player bundle...[/cyan]")
            await client.init()
            print_tokens(client.bundle_tokens)

    asyncio.run(_tokens_async())


@app.command()
def search(
    kind: str = typer.Argument(..., help=f"One of: {', '.join(SEARCH_KINDS)}."),
    query: str = typer.Argument(..., help="Search query."),
    limit: int = typer.Option(20, "-l", "--limit", help="Maximum results."),
):
    """Search the Qobuz catalog."""
    if kind not in SEARCH_KINDS:
        raise typer.BadParameter(f"Kind must be one of: {', '.join(SEARCH_KINDS)}.")

    async def _search_async():
        async with QobuzClient(_load_config()) as client:
            await client.init()
            search_method = getattr(client, f"search_{kind}")
            print_search_results(kind, await search_method(query, limit))

    asyncio.run(_search_async())


@app.command(name="stream-url")
def stream_url(
    track_id: int = typer.Argument(..., help="Qobuz track ID."),
    quality: Optional[int] = typer.Option(None, "-q", "--quality", help=QUALITY_HELP),
):
    """Resolve a track's stream URL, falling back to lower qualities."""

    async def _stream_url_async():
        config = _load_config(quality)
        async with QobuzClient(config) as client:
            await client.init()
            await _login(client, config)
            result = await client.get_stream_url_with_fallback(
                track_id, config.preferred_quality
            )
            print_stream_url(result)

    asyncio.run(_stream_url_async())


@app.command()
def prefetch(
    track_ids: list[int] = typer.Argument(..., help="Qobuz track IDs."),  # noqa: B008
    quality: Optional[int] = typer.Option(None, "-q", "--quality", help=QUALITY_HELP),
):
    """Download tracks into the in-memory audio cache and report cache usage."""

    async def _prefetch_async():
        config = _load_config(quality)
        cache = AudioCache(config.cache_size_bytes)
        downloader = AudioDownloader(
            total_timeout=config.download_timeout,
            connect_timeout=config.download_connect_timeout,
        )
        async with QobuzClient(config) as client:
            await client.init()
            await _login(client, config)
            async with Prefetcher(
                cache, downloader, queue_size=config.prefetch_queue_size
            ) as prefetcher:
                for track_id in track_ids:
                    try:
                        result = await client.get_stream_url_with_fallback(
                            track_id, config.preferred_quality
                        )
                    except NoQualityAvailableError as e:
                        console.print(f"[yellow]⚠️  Track {track_id}: {e}[/yellow]")
                        continue
                    prefetcher.prefetch(track_id, result.url)
                await prefetcher.join()
                print_cache_stats(cache.stats())

    asyncio.run(_prefetch_async())

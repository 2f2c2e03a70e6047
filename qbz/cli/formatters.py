"""
Functions for formatting and displaying data in the console using Rich.
"""

from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from qbz.models.auth import BundleTokens
from qbz.models.config import ClientConfig
from qbz.models.quality import Quality, get_quality_color
from qbz.models.stats import CacheStats
from qbz.models.stream import StreamUrl
from qbz.utils.formatting import (
    format_duration,
    format_size,
    get_artist_name,
    get_track_title,
    mask_secret,
)


def format_error_with_suggestions(
    error: Exception, context: Optional[dict] = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthenticationError": [
            "• Verify your credentials in the configuration file.",
            "• Your token may have expired. Run `qbz init` again.",
        ],
        "BundleExtractionError": [
            "• Qobuz may have shipped a new web player bundle.",
            "• Check that https://play.qobuz.com/login is reachable.",
        ],
        "InvalidAppIdError": [
            "• The web player's app id was rejected; try again later.",
        ],
        "InvalidAppSecretError": [
            "• Qobuz may have rotated their app secrets.",
            "• Restart the client so the bundle is scraped again.",
        ],
        "NoQualityAvailableError": [
            "• This track may not be available in your region.",
            "• Your subscription tier may not grant access.",
            "• Try a lower quality with the -q flag.",
        ],
        "ConfigurationError": [
            "• Run `qbz init --force` to write a fresh configuration.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• The Qobuz API might be temporarily unavailable.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config: ClientConfig):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    quality = Quality(config.quality)
    table.add_row("Auth Method:", "Token" if config.token else "Email/Password")
    table.add_row("Email:", config.email or "[dim]-[/dim]")
    table.add_row("Quality:", f"({quality.user_code}) {quality.label}")
    table.add_row("Cache Size:", format_size(config.cache_size_bytes))
    table.add_row("Prefetch Queue:", str(config.prefetch_queue_size))

    console.print(
        Panel(
            table,
            title=f"Configuration ([dim]{config.config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_tokens(tokens: BundleTokens):
    """Displays extracted bundle tokens with secrets masked."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("App ID:", f"[green]{tokens.app_id}[/green]")
    for i, secret in enumerate(tokens.secrets, 1):
        table.add_row(f"Secret {i}:", f"[dim]{mask_secret(secret)}[/dim]")

    console.print(
        Panel(table, title="[bold green]✓ Bundle Tokens[/bold green]", border_style="green")
    )


def print_search_results(kind: str, page: dict[str, Any]):
    """Displays one page of search results."""
    console = Console()
    items = page.get("items", [])
    total = page.get("total", len(items))

    table = Table(title=f"{kind.capitalize()} ({len(items)} of {total})", box=box.SIMPLE)
    table.add_column("ID", style="dim")
    table.add_column("Title" if kind != "artists" else "Name", style="cyan")
    if kind != "artists":
        table.add_column("Artist", style="green")
    table.add_column("Info", justify="right")

    for item in items:
        if kind == "artists":
            info = f"{item.get('albums_count', 0)} albums"
            table.add_row(str(item.get("id", "")), item.get("name", ""), info)
            continue

        if kind == "tracks":
            info = format_duration(item.get("duration", 0))
        elif kind == "albums":
            info = str(item.get("release_date_original", ""))[:4]
        else:
            info = f"{item.get('tracks_count', 0)} tracks"
        table.add_row(
            str(item.get("id", "")), get_track_title(item), get_artist_name(item), info
        )

    console.print(table)


def print_stream_url(stream_url: StreamUrl):
    """Displays a resolved stream location."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    color = get_quality_color(stream_url.format_id)
    bit_depth = f"{stream_url.bit_depth}-bit / " if stream_url.bit_depth else ""
    table.add_row("Track:", str(stream_url.track_id))
    table.add_row("Format:", f"[{color}]{stream_url.format_id}[/{color}]")
    table.add_row("Mime Type:", stream_url.mime_type)
    table.add_row("Resolution:", f"{bit_depth}{stream_url.sampling_rate} kHz")
    table.add_row("URL:", f"[dim]{stream_url.url}[/dim]")

    console.print(
        Panel(table, title="[bold green]✓ Stream URL[/bold green]", border_style="green")
    )


def print_cache_stats(stats: CacheStats):
    """Displays a cache statistics snapshot."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right", width=20)
    table.add_column(style="white", justify="left")

    table.add_row("Cached Tracks:", f"[bold green]{stats.cached_tracks}[/bold green]")
    table.add_row(
        "Size:",
        f"{format_size(stats.current_size_bytes)} / {format_size(stats.max_size_bytes)}"
        f" [dim]({stats.usage_ratio:.0%})[/dim]",
    )
    if stats.fetching_count:
        table.add_row("Fetching:", f"[yellow]{stats.fetching_count}[/yellow]")

    console.print(
        Panel(table, title="[bold cyan]Audio Cache[/bold cyan]", border_style="cyan")
    )

"""Display functions for platform commands."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ...errors import FieldError
from ...platforms.capabilities import PlatformCapability


def _window(seconds: float) -> str:
    if seconds >= 86400 and seconds % 86400 == 0:
        return f"{int(seconds // 86400)}d"
    if seconds >= 3600 and seconds % 3600 == 0:
        return f"{int(seconds // 3600)}h"
    if seconds >= 60 and seconds % 60 == 0:
        return f"{int(seconds // 60)}m"
    return f"{seconds:g}s"


def show_platforms(console: Console, capabilities: list[PlatformCapability], configured: dict[str, bool]) -> None:
    """Display the platform registry as a table."""
    table = Table(title="Supported Platforms")
    table.add_column("Platform", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Caption", style="yellow", justify="right")
    table.add_column("Hashtags", justify="right")
    table.add_column("Max MB", justify="right")
    table.add_column("Max sec", justify="right")
    table.add_column("Carousel", justify="right")
    table.add_column("PKCE")
    table.add_column("Rate", style="dim")
    table.add_column("Configured")

    for cap in capabilities:
        limits = cap.limits
        table.add_row(
            cap.platform,
            cap.display_name,
            f"{limits.max_caption_length} ({limits.caption_policy.value})",
            str(limits.max_hashtags) if limits.max_hashtags else "-",
            f"{limits.max_file_size_mb:g}",
            str(limits.max_video_seconds),
            f"{cap.carousel.min_items}-{cap.carousel.max_items}",
            "yes" if cap.oauth.pkce_required else "",
            f"{cap.rate_limit.max_requests}/{_window(cap.rate_limit.window_seconds)}",
            "[green]yes[/green]" if configured.get(cap.platform) else "[dim]no[/dim]",
        )

    console.print(table)


def show_capability(console: Console, cap: PlatformCapability, configured: bool) -> None:
    """Display the full capability record for one platform."""
    limits = cap.limits
    oauth = cap.oauth

    lines = [
        f"[bold]{cap.display_name}[/bold] [dim]({cap.platform})[/dim]",
        f"API: {cap.api_base_url}",
        "",
        "[cyan]Content limits[/cyan]",
        f"  Caption: {limits.max_caption_length} chars ({limits.caption_policy.value})",
        f"  Hashtags: {limits.max_hashtags or 'n/a'}",
        f"  Video: {limits.max_video_seconds}s, file: {limits.max_file_size_mb:g}MB",
        f"  Formats: {', '.join(limits.supported_formats)}",
        "",
        "[cyan]Carousel[/cyan]",
        f"  Items: {cap.carousel.min_items}-{cap.carousel.max_items}",
        f"  Video: {'yes' if cap.carousel.allow_video else 'no'}, mixed: {'yes' if cap.carousel.allow_mixed else 'no'}",
        "",
        "[cyan]OAuth[/cyan]",
        f"  Authorize: {oauth.auth_url}",
        f"  Token: {oauth.token_url}",
        f"  Scopes: {oauth.scope_separator.join(oauth.scopes)}",
        f"  PKCE: {'yes' if oauth.pkce_required else 'no'}, refresh: {'yes' if cap.supports_refresh else 'no'}",
        f"  Client configured: {'[green]yes[/green]' if configured else '[red]no[/red]'}",
        "",
        "[cyan]Rate limit[/cyan]",
        f"  {cap.rate_limit.max_requests} requests / {_window(cap.rate_limit.window_seconds)}",
    ]
    console.print(Panel("\n".join(lines), title="Platform Limits", border_style="cyan"))


def show_validation(console: Console, platform: str, errors: list[FieldError]) -> None:
    """Display validator output."""
    if not errors:
        console.print(f"[green]Content is valid for {platform}[/green]")
        return

    table = Table(title=f"Validation errors ({platform})")
    table.add_column("Field", style="yellow")
    table.add_column("Problem", style="white")
    for error in errors:
        table.add_row(error.field, error.message)
    console.print(table)

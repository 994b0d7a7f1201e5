"""Platform registry and validation commands."""

from __future__ import annotations

from typing import Optional

import typer

from ...config import get_settings
from ...errors import UnsupportedPlatformError
from ...platforms import PlatformRegistry
from ...publishing.models import ContentPayload, MediaDescriptor
from ...publishing.validator import ContentValidator
from ..core import console, print_error
from .display import show_capability, show_platforms, show_validation


def platforms() -> None:
    """List supported platforms and their limits."""
    registry = PlatformRegistry()
    settings = get_settings()
    capabilities = [registry.get(name) for name in registry.available_platforms()]
    configured = {cap.platform: settings.get_client(cap.platform).is_configured for cap in capabilities}
    show_platforms(console, capabilities, configured)


def limits(
    platform: str = typer.Argument(..., help="Platform identifier (e.g. instagram)"),
) -> None:
    """Show the full capability record for a platform."""
    registry = PlatformRegistry()
    try:
        capability = registry.get(platform)
    except UnsupportedPlatformError as e:
        print_error(str(e))
        raise typer.Exit(1)

    configured = get_settings().get_client(capability.platform).is_configured
    show_capability(console, capability, configured)


def validate(
    platform: str = typer.Argument(..., help="Platform identifier"),
    caption: str = typer.Option("", "--caption", "-c", help="Caption text"),
    hashtag: Optional[list[str]] = typer.Option(None, "--hashtag", "-t", help="Hashtag (repeatable)"),
    mention: Optional[list[str]] = typer.Option(None, "--mention", "-m", help="Mention (repeatable)"),
    media_url: Optional[str] = typer.Option(None, "--media-url", "-u", help="Public media URL"),
    size_bytes: int = typer.Option(0, "--size-bytes", help="Media size in bytes"),
    duration: Optional[float] = typer.Option(None, "--duration", help="Video duration in seconds"),
) -> None:
    """Check content against a platform's limits.

    Exits with code 1 when any check fails.
    """
    registry = PlatformRegistry()
    content = ContentPayload(caption=caption, hashtags=hashtag or [], mentions=mention or [])
    media = None
    if media_url:
        media = MediaDescriptor(url=media_url, size_bytes=size_bytes, duration_seconds=duration)

    try:
        result = ContentValidator(registry).validate(platform, content, media=media)
    except UnsupportedPlatformError as e:
        print_error(str(e))
        raise typer.Exit(1)

    show_validation(console, registry.get(platform).platform, result.errors)
    if not result.valid:
        raise typer.Exit(1)

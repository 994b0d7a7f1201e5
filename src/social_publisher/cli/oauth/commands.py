"""OAuth helper commands."""

from __future__ import annotations

import typer

from ...config import get_settings
from ...crypto import generate_key_hex
from ...errors import CredentialError, UnsupportedPlatformError
from ...oauth.service import OAuthService
from ...platforms import PlatformRegistry
from ..core import console, print_error
from .display import show_authorization_url, show_state


def _service() -> OAuthService:
    return OAuthService(PlatformRegistry(), settings=get_settings())


def auth_url(
    platform: str = typer.Argument(..., help="Platform identifier"),
    user_id: str = typer.Argument(..., help="Local user id to embed in the state"),
) -> None:
    """Build an authorization URL for a platform."""
    try:
        request = _service().generate_authorization_url(platform, user_id)
    except (UnsupportedPlatformError, CredentialError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    show_authorization_url(console, platform, request)


def check_state(
    state: str = typer.Argument(..., help="Signed state string from the callback"),
) -> None:
    """Verify a signed OAuth state and show its payload."""
    decoded = _service().validate_oauth_state(state)
    if decoded is None:
        print_error("State is invalid, expired, or was signed with another secret")
        raise typer.Exit(1)

    show_state(console, decoded)


def generate_key() -> None:
    """Print a new 32-byte key (hex) for TOKEN_ENCRYPTION_KEY."""
    console.print(generate_key_hex(), markup=False, highlight=False)

"""Display functions for OAuth commands."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ...oauth.models import AuthorizationRequest, OAuthState
from ...utils.timestamps import format_timestamp, from_epoch_ms


def show_authorization_url(console: Console, platform: str, request: AuthorizationRequest) -> None:
    """Display an authorization URL with its state."""
    lines = [
        f"[bold]Open this URL to connect {platform}:[/bold]",
        "",
        f"[link={request.url}]{request.url}[/link]",
        "",
        f"[dim]State:[/dim] {request.state}",
    ]
    if request.code_verifier:
        lines.append(f"[dim]PKCE verifier:[/dim] {request.code_verifier}")
    console.print(Panel("\n".join(lines), title="Authorization URL", border_style="cyan"))


def show_state(console: Console, state: OAuthState) -> None:
    """Display a decoded OAuth state."""
    table = Table(title="OAuth State", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("User", state.user_id)
    table.add_row("Platform", state.platform)
    table.add_row("Issued", format_timestamp(from_epoch_ms(state.timestamp)) or "")
    table.add_row("Nonce", state.nonce)
    table.add_row("PKCE verifier", "present" if state.code_verifier else "-")
    console.print(table)

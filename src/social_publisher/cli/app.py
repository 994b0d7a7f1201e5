"""Typer app configuration and logging setup."""

from __future__ import annotations

import typer
from dotenv import load_dotenv

from ..config import get_settings
from ..logging_config import setup_logging

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="social-publisher",
    help="OAuth credentials and multi-platform publishing toolkit",
    add_completion=False,
    no_args_is_help=True,
)


def register_commands() -> None:
    """Register all commands from feature modules."""
    from .platform.commands import limits, platforms, validate

    app.command(name="platforms")(platforms)
    app.command(name="limits")(limits)
    app.command(name="validate")(validate)

    from .oauth.commands import auth_url, check_state, generate_key

    app.command(name="auth-url")(auth_url)
    app.command(name="check-state")(check_state)
    app.command(name="generate-key")(generate_key)


register_commands()


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    setup_logging(settings.log_dir, settings.log_level)
    app()

"""Command-line interface for otpgate.

This module provides the CLI commands for running and managing
the otpgate service.
"""

import asyncio
from typing import NoReturn

import click

from otpgate import __version__
from otpgate.core.config import get_settings
from otpgate.core.logging import configure_logging, get_logger


@click.group()
@click.version_option(version=__version__, prog_name="otpgate")
def cli() -> None:
    """otpgate - password + one-time-passcode authentication service.

    Configuration is read from OTPGATE_* environment variables and .env.
    """


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (overrides config)")
@click.option("--port", type=int, default=None, help="Port to bind to (overrides config)")
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the HTTP server."""
    import uvicorn

    settings = get_settings()
    bind_host = host or settings.host
    bind_port = port or settings.port

    configure_logging(settings)
    logger = get_logger(__name__)
    logger.info(
        "Starting otpgate server",
        host=bind_host,
        port=bind_port,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "otpgate.infrastructure.api.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
def init_db(force: bool) -> None:
    """Create the database tables.

    Intended for development. In production, run ``alembic upgrade head``.
    """
    from otpgate.infrastructure.persistence.database import get_db_manager

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize() -> None:
        db = get_db_manager()
        try:
            await db.create_tables()
            click.echo("Database initialized successfully.")
        finally:
            await db.disconnect()

    asyncio.run(initialize())


@cli.command()
@click.argument("email")
@click.argument(
    "roles",
    nargs=-1,
    required=True,
    type=click.Choice(["user", "admin", "moderator"]),
)
def assign_roles(email: str, roles: tuple[str, ...]) -> None:
    """Replace the roles of the account registered under EMAIL.

    Operator bootstrap: no admin identity is required, so this is how the
    first admin is created.

    Example: otpgate assign-roles alice@example.com admin user
    """
    from otpgate.domain.services import parse_roles
    from otpgate.infrastructure.persistence.database import get_db_manager
    from otpgate.infrastructure.persistence.repositories import AccountRepository

    settings = get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)

    async def assign() -> None:
        db = get_db_manager()
        try:
            repository = AccountRepository(db.session_factory)
            account = await repository.find_by_email(email)
            if account is None:
                click.echo(f"Error: no account registered under {email}", err=True)
                raise SystemExit(1)

            updated = await repository.update_fields(account.id, {"roles": parse_roles(roles)})
            if updated is None:
                click.echo(f"Error: account {account.id} disappeared", err=True)
                raise SystemExit(1)

            assigned = sorted(role.value for role in updated.roles)
            logger.info("Roles assigned via CLI", account_id=updated.id, roles=assigned)
            click.echo(f"Roles for {email}: {', '.join(assigned)}")
        finally:
            await db.disconnect()

    asyncio.run(assign())


@cli.command()
def info() -> None:
    """Display configuration (secrets omitted)."""
    settings = get_settings()

    click.echo(f"""
otpgate v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  API Prefix:   {settings.api_prefix}

Server:
  Host:         {settings.host}
  Port:         {settings.port}

Database:
  URL:          {settings.database_url}

Security:
  Access Token: {settings.access_token_expire_minutes} minutes
  Refresh:      {settings.refresh_token_expire_days} days
  Passcode:     {settings.otp_expire_minutes} minutes

Email:
  Provider:     {settings.email_provider}
  From:         {settings.email_from_name} <{settings.email_from_address}>

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    Called by the ``otpgate`` console script and ``python -m otpgate``.
    """
    cli()


if __name__ == "__main__":
    main()

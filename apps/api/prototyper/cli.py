"""CLI entrypoint (Typer).

Commands:
- init-db: create tables
- create-user / issue-token: manage callers of the API
- submit: queue a prompt for a user
- worker: run the build worker loop
- serve: run the API server
"""

from __future__ import annotations

import asyncio
import logging
import signal

import typer

from prototyper.api.main import configure_logging
from prototyper.api.security import issue_access_token
from prototyper.config import get_settings
from prototyper.container import build_container
from prototyper.database.models import User
from prototyper.database.session import init_db
from prototyper.exceptions import PrototyperError

app = typer.Typer(help="Prototyper: turn prompts into previewable React components.")

logger = logging.getLogger(__name__)


@app.callback()
def main() -> None:
    configure_logging(get_settings().log_level)


@app.command("init-db")
def init_db_command() -> None:
    """Create database tables."""

    async def _run() -> None:
        container = build_container(get_settings())
        try:
            await init_db(container.engine)
        finally:
            await container.close()

    asyncio.run(_run())
    typer.echo("Database initialized")


@app.command("create-user")
def create_user(email: str) -> None:
    """Create a user that can own prompts."""

    async def _run() -> User:
        container = build_container(get_settings())
        try:
            return await container.users.create(email)
        finally:
            await container.close()

    try:
        user = asyncio.run(_run())
    except PrototyperError as e:
        typer.echo(e.message, err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Created user {user.email} ({user.id})")


@app.command("issue-token")
def issue_token(email: str) -> None:
    """Print a bearer token for an existing user."""
    settings = get_settings()

    async def _run() -> str | None:
        container = build_container(settings)
        try:
            user = await container.users.find_by_email(email)
            if user is None:
                return None
            await container.users.update_last_login(user.id)
            return user.id
        finally:
            await container.close()

    user_id = asyncio.run(_run())
    if user_id is None:
        typer.echo(f"No user with email {email}", err=True)
        raise typer.Exit(code=1)

    token, _ = issue_access_token(user_id, settings)
    typer.echo(token)


@app.command()
def submit(email: str, prompt_text: str) -> None:
    """Queue a prompt for a user; the worker builds it."""
    from prototyper.services.intake import create_prompt

    async def _run():
        container = build_container(get_settings())
        try:
            user = await container.users.find_by_email(email)
            if user is None:
                return None
            return await create_prompt(container.prompts, container.titles, user.id, prompt_text)
        finally:
            await container.close()

    try:
        prompt = asyncio.run(_run())
    except PrototyperError as e:
        typer.echo(e.message, err=True)
        raise typer.Exit(code=1)
    if prompt is None:
        typer.echo(f"No user with email {email}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Queued prompt {prompt.id}: {prompt.title}")


@app.command()
def worker() -> None:
    """Run the prompt build worker until interrupted."""
    settings = get_settings()

    async def _run() -> None:
        container = build_container(settings)
        try:
            # Setup failures are fatal: verify the database before looping
            await init_db(container.engine)
            prompt_worker = container.build_worker()

            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, prompt_worker.stop)

            await prompt_worker.run()
        finally:
            await container.close()

    try:
        asyncio.run(_run())
    except Exception as e:
        logger.exception(f"Prompt worker crashed: {e}")
        raise typer.Exit(code=1)


@app.command()
def serve(reload: bool = typer.Option(False, "--reload")) -> None:
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "prototyper.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=reload or settings.debug,
    )


if __name__ == "__main__":
    app()

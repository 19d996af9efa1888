"""Operational CLI using Typer.

Not part of the request path: deployment checks and out-of-band admin tasks.
"""
import asyncio

import typer
from sqlalchemy.exc import SQLAlchemyError

from db.session import engine, session_scope
from models.user import UserRole
from services import identity_service
from services.recommendation_service import count_recommendations

app = typer.Typer(
    name="recommendations",
    help="Recommendations API maintenance commands",
    no_args_is_help=True,
)


async def _verify() -> int:
    try:
        async with session_scope() as db:
            return await count_recommendations(db)
    finally:
        await engine.dispose()


async def _promote(subject: str) -> bool:
    try:
        async with session_scope() as db:
            user = await identity_service.get_user_by_subject(db, subject)
            if user is None:
                return False
            user.role = UserRole.ADMIN
            return True
    finally:
        await engine.dispose()


@app.command("verify")
def verify() -> None:
    """Check that the recommendations table is reachable and print its row count."""
    try:
        count = asyncio.run(_verify())
    except (SQLAlchemyError, OSError) as e:
        typer.secho(f"Recommendations table not accessible: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from e
    typer.secho("Recommendations table verified and accessible", fg=typer.colors.GREEN)
    typer.echo(f"record_count={count}")


@app.command("promote")
def promote(subject: str = typer.Argument(..., help="Identity provider subject id")) -> None:
    """Grant the admin role to an already-registered user."""
    if not asyncio.run(_promote(subject)):
        typer.secho(
            f"No user registered for subject {subject!r}. "
            "They must create a recommendation or sign in first.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
    typer.secho(f"{subject} is now an admin", fg=typer.colors.GREEN)


def cli() -> None:
    """Entry point for the CLI application."""
    app()

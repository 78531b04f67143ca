"""User management CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from spendee.database import get_session_context
from spendee.models import User, utcnow
from spendee.schemas.auth import check_password
from spendee.services.auth import get_user_by_email
from spendee.services.notifications import reset_password_url
from spendee.services.passwords import hash_password
from spendee.services.tokens import TokenPurpose, issue_token

console = Console()
app = typer.Typer(help="User management commands")


async def _require_user(session: AsyncSession, email: str) -> User:
    user = await get_user_by_email(session, email.strip().lower())
    if not user:
        console.print(f"[red]Error:[/red] User {email} not found")
        raise typer.Exit(1)
    return user


async def create_account(
    session: AsyncSession,
    email: str,
    name: str | None,
    password: str | None,
    verified: bool = False,
) -> User:
    """Create a user without going through the registration email flow."""
    email = email.strip().lower()
    if await get_user_by_email(session, email):
        console.print(f"[red]Error:[/red] User {email} already exists")
        raise typer.Exit(1)

    try:
        check_password(password)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    user = User(
        email=email,
        name=name,
        password=hash_password(password) if password else None,
        email_verified=utcnow() if verified else None,
    )
    session.add(user)
    await session.commit()
    return user


async def mark_verified(session: AsyncSession, email: str) -> bool:
    """Mark a user's email verified. Returns False if it already was."""
    user = await _require_user(session, email)
    if user.email_verified:
        return False

    user.email_verified = utcnow()
    session.add(user)
    await session.commit()
    return True


async def create_reset_link(session: AsyncSession, email: str) -> str:
    """Issue a password reset token and return the link, without sending email."""
    user = await _require_user(session, email)
    token = await issue_token(session, user.id, TokenPurpose.RESET_PASSWORD)
    await session.commit()
    return reset_password_url(token)


@app.command("list")
def list_users():
    """List all users."""

    async def _list():
        async with get_session_context() as session:
            stmt = select(User).order_by(User.email)
            result = await session.execute(stmt)
            users = result.scalars().all()

            table = Table(title="Users")
            table.add_column("ID", style="cyan")
            table.add_column("Email", style="green")
            table.add_column("Name")
            table.add_column("Verified", style="magenta")
            table.add_column("Created", style="dim")

            for user in users:
                verified = "[green]Yes[/green]" if user.email_verified else "No"
                created = user.created_at.strftime("%Y-%m-%d") if user.created_at else "-"
                table.add_row(user.id, user.email, user.name or "-", verified, created)

            console.print(table)

    asyncio.run(_list())


@app.command("create")
def create_user(
    email: str = typer.Argument(..., help="User email"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name"),
    password: str | None = typer.Option(
        None, "--password", "-p", help="Password (prompted when omitted)", hide_input=True
    ),
    verified: bool = typer.Option(False, "--verified", help="Skip email verification"),
):
    """Create a new user."""
    if password is None:
        password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)

    async def _create():
        async with get_session_context() as session:
            user = await create_account(session, email, name, password, verified)
            console.print(f"[green]Created user:[/green] {user.email} (verified={verified})")

    asyncio.run(_create())


@app.command("verify")
def verify_user(email: str = typer.Argument(..., help="User email")):
    """Mark a user's email address as verified."""

    async def _verify():
        async with get_session_context() as session:
            if await mark_verified(session, email):
                console.print(f"[green]Verified:[/green] {email}")
            else:
                console.print(f"[yellow]Warning:[/yellow] {email} is already verified")

    asyncio.run(_verify())


@app.command("reset-link")
def reset_link(email: str = typer.Argument(..., help="User email")):
    """Generate a password reset link for a user."""

    async def _generate():
        async with get_session_context() as session:
            url = await create_reset_link(session, email)
            console.print(f"[green]Reset URL:[/green] {url}")

    asyncio.run(_generate())

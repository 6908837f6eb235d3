"""Notekeeper CLI — run the server and talk to the API from a terminal.

Usage:
    notekeeper serve                                  # Run the API with uvicorn
    notekeeper init-db                                # Create tables (local dev)
    notekeeper signup a@x.com -f Ada -l Lovelace      # Prompts for password
    notekeeper verify a@x.com 123456                  # Confirm the emailed code
    notekeeper resend a@x.com                         # Email a fresh code
    notekeeper login a@x.com                          # Prints a session token
    notekeeper me                                     # Current user (needs NOTEKEEPER_TOKEN)
    notekeeper notes --search groceries               # List notes
    notekeeper note-add "Title" "Body" -t work        # Create a note
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5000"


def _api_url() -> str:
    return os.environ.get("NOTEKEEPER_API_URL", DEFAULT_API_URL).rstrip("/")


def _token() -> str:
    token = os.environ.get("NOTEKEEPER_TOKEN")
    if not token:
        click.secho(
            "Error: NOTEKEEPER_TOKEN is not set (run `notekeeper login` first)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return token


def _client(authenticated: bool = False) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Notekeeper API."""
    headers = {"Authorization": f"Bearer {_token()}"} if authenticated else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _check(r: httpx.Response) -> dict:
    """Return the JSON body, or print the API's error and exit."""
    if r.is_error:
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text
        click.secho(f"Error ({r.status_code}): {detail}", fg="red", err=True)
        sys.exit(1)
    return r.json()


async def _request(method: str, path: str, authenticated: bool = False, **kwargs) -> dict:
    async with _client(authenticated) as c:
        r = await c.request(method, path, **kwargs)
        return _check(r)


def _print_session(data: dict) -> None:
    user = data["user"]
    click.secho(data.get("message", ""), fg="green")
    click.echo(f"  User:  {user['firstName']} {user['lastName']} <{user['email']}>")
    click.echo(f"  Token: {data['token']}")
    click.echo()
    click.echo(f"  export NOTEKEEPER_TOKEN={data['token']}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="notekeeper")
def main():
    """Notekeeper — notes API server and client."""


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: NOTEKEEPER_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: NOTEKEEPER_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from notekeeper.config import settings

    uvicorn.run(
        "notekeeper.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables from the models (use alembic in production)."""
    from notekeeper.db.engine import create_tables

    _run(create_tables())
    click.secho("Tables created.", fg="green")


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.option("--first-name", "-f", required=True)
@click.option("--last-name", "-l", required=True)
@click.password_option()
def signup(email: str, first_name: str, last_name: str, password: str):
    """Create an account. A verification code is emailed to EMAIL."""
    data = _run(_request("POST", "/api/auth/signup", json={
        "email": email,
        "password": password,
        "firstName": first_name,
        "lastName": last_name,
    }))
    click.secho(data["message"], fg="green")


@main.command()
@click.argument("email")
@click.argument("otp")
def verify(email: str, otp: str):
    """Confirm the 6-digit code sent to EMAIL."""
    data = _run(_request("POST", "/api/auth/verify-otp", json={"email": email, "otp": otp}))
    _print_session(data)


@main.command()
@click.argument("email")
def resend(email: str):
    """Email a fresh verification code."""
    data = _run(_request("POST", "/api/auth/resend-otp", json={"email": email}))
    click.secho(data["message"], fg="green")


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and print a session token."""
    data = _run(_request("POST", "/api/auth/login", json={"email": email, "password": password}))
    _print_session(data)


@main.command()
def me():
    """Show the account behind NOTEKEEPER_TOKEN."""
    data = _run(_request("GET", "/api/auth/me", authenticated=True))
    click.echo(_pretty_json(data["user"]))


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@main.command()
@click.option("--search", "-s", help="Search title, content and tags")
@click.option("--tag", help="Only notes with this tag")
@click.option("--page", type=int, default=1)
@click.option("--limit", type=int, default=20)
@click.option("--json", "as_json", is_flag=True, help="Raw JSON output")
def notes(search: Optional[str], tag: Optional[str], page: int, limit: int, as_json: bool):
    """List your notes (pinned first)."""
    params: dict = {"page": page, "limit": limit}
    if search:
        params["search"] = search
    if tag:
        params["tag"] = tag
    data = _run(_request("GET", "/api/notes", authenticated=True, params=params))

    if as_json:
        click.echo(_pretty_json(data))
        return

    items = data["notes"]
    if not items:
        click.echo("No notes found.")
        return

    p = data["pagination"]
    click.secho(f"Notes (page {p['page']}/{max(p['pages'], 1)}, {p['total']} total):", bold=True)
    for n in items:
        pin = click.style("*", fg="yellow") if n["isPinned"] else " "
        tags = ", ".join(n["tags"]) or "—"
        click.echo(f"  {pin} {n['id'][:8]}  {n['title'][:40]:40s}  [{tags}]")


@main.command("note-add")
@click.argument("title")
@click.argument("content")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--color", default="#ffffff", help="Background color (#RRGGBB)")
def note_add(title: str, content: str, tags: tuple[str, ...], color: str):
    """Create a note."""
    data = _run(_request("POST", "/api/notes", authenticated=True, json={
        "title": title,
        "content": content,
        "tags": list(tags),
        "backgroundColor": color,
    }))
    click.secho(f"{data['message']}: {data['note']['id']}", fg="green")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()

"""CLI entrypoint for AskDocs."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

app = typer.Typer(name="askdocs", help="AskDocs command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8000"

HostOption = typer.Option(None, "--host", help="Override backend host")
TokenOption = typer.Option(None, "--token", help="Bearer token (defaults to ASKDOCS_TOKEN)")


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("ASKDOCS_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _resolve_token(override: Optional[str]) -> str:
    token = override or os.environ.get("ASKDOCS_TOKEN")
    if not token:
        typer.echo("A token is required: pass --token or set ASKDOCS_TOKEN", err=True)
        raise typer.Exit(code=2)
    return token


def _request(
    method: str,
    path: str,
    host: Optional[str] = None,
    token: Optional[str] = None,
    **kwargs,
) -> requests.Response:
    url = f"{_resolve_host(host)}{path}"
    headers = {"Authorization": f"Bearer {_resolve_token(token)}"}
    resp = requests.request(method, url, headers=headers, timeout=60, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(resp: requests.Response) -> None:
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
    ingest: bool = typer.Option(False, "--ingest", help="Process the document right after uploading"),
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Upload a document."""
    with path.open("rb") as fh:
        resp = _request("POST", "/documents", host=host, token=token, files={"file": (path.name, fh)})
    if not ingest:
        _echo(resp)
        return
    document_id = resp.json()["id"]
    _echo(_request("POST", f"/documents/{document_id}/ingest", host=host, token=token))


@app.command("ingest")
def ingest_document(
    document_id: str = typer.Argument(..., help="Document identifier"),
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Extract, chunk and embed an uploaded document."""
    _echo(_request("POST", f"/documents/{document_id}/ingest", host=host, token=token))


@app.command()
def status(
    document_id: str = typer.Argument(..., help="Document identifier"),
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Show the processing status of a document."""
    _echo(_request("GET", f"/documents/{document_id}/status", host=host, token=token))


@app.command()
def documents(
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """List uploaded documents."""
    _echo(_request("GET", "/documents", host=host, token=token))


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to answer from your documents"),
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Ask a question."""
    _echo(_request("POST", "/query", host=host, token=token, json={"query": question}))


if __name__ == "__main__":
    app()

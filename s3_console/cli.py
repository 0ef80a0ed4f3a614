from __future__ import annotations

from dataclasses import asdict
import json
import logging
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .controller import ConsoleController
from .errors import ConsoleError, InvalidCursor
from .models import DirectoryEntry
from .profiles import ProfileStorage
from .settings import SettingsStorage, apply_environment, sanitize_settings
from .store import CANNED_ACLS, StoreCredentials
from .ui_utils import (
    compose_key,
    display_name,
    format_last_modified,
    format_size,
    load_package_info,
    parent_prefix,
    sort_entries,
)

app = typer.Typer(help="Browse and manage an S3-compatible object store.")
console = Console()

LOGGER = logging.getLogger(__name__)

# Commands that run without listing buckets first.
UNVERIFIED_COMMANDS = {"config", "ping"}


def _controller(ctx: typer.Context) -> ConsoleController:
    controller: ConsoleController = ctx.obj
    if not controller.is_connected:
        console.print("[red]No connection. Pass --profile or --endpoint/--access-key/--secret-key.[/red]")
        raise typer.Exit(code=2)
    return controller


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if value:
        info = load_package_info()
        console.print(f"{info.name} {info.version}".strip())
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Saved connection profile."),
    endpoint: Optional[str] = typer.Option(None, envvar="S3_ENDPOINT", help="Store endpoint URL."),
    access_key: Optional[str] = typer.Option(None, envvar="S3_ACCESS_KEY"),
    secret_key: Optional[str] = typer.Option(None, envvar="S3_SECRET_KEY"),
    region: Optional[str] = typer.Option(None, envvar="S3_REGION"),
    log_level: Optional[str] = typer.Option(None, help="Logging level, e.g. DEBUG."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version."
    ),
) -> None:
    settings = apply_environment(SettingsStorage().load())
    level = getattr(logging, (log_level or "").upper(), None) or settings.log_level_value
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    controller = ConsoleController(storage=ProfileStorage(), settings=settings)
    ctx.obj = controller
    verify = ctx.invoked_subcommand not in UNVERIFIED_COMMANDS
    try:
        if profile:
            controller.connect_with_profile(profile, verify=verify)
        elif endpoint and access_key and secret_key:
            controller.connect(
                StoreCredentials(
                    endpoint_url=endpoint,
                    access_key=access_key,
                    secret_key=secret_key,
                    region=region or settings.region,
                ),
                verify=verify,
            )
    except (ConsoleError, ValueError) as exc:
        LOGGER.debug("Connection failed", exc_info=True)
        _fail(exc)


@app.command()
def buckets(ctx: typer.Context) -> None:
    """List buckets."""
    try:
        results = _controller(ctx).refresh_buckets()
    except ConsoleError as exc:
        _fail(exc)

    table = Table(title="Buckets")
    table.add_column("Name")
    table.add_column("Created")
    for bucket in results:
        table.add_row(bucket.name, format_last_modified(bucket.creation_date))
    console.print(table)


@app.command("ls")
def list_objects(
    ctx: typer.Context,
    bucket: str,
    prefix: str = typer.Argument("", help="Folder prefix, e.g. docs/"),
    token: Optional[str] = typer.Option(None, "--token", help="Continuation token from a previous page."),
    as_json: bool = typer.Option(False, "--json", help="Print the JSON listing body."),
) -> None:
    """List one page of folders and files under PREFIX."""
    controller = _controller(ctx)
    if as_json:
        status, body = controller.list_objects_response(
            {"bucket": bucket, "prefix": prefix, "continuationToken": token}
        )
        typer.echo(json.dumps(body, indent=2))
        if status != 200:
            raise typer.Exit(code=1)
        return

    try:
        page = controller.list_objects(bucket_name=bucket, prefix=prefix, continuation_token=token)
    except InvalidCursor as exc:
        console.print("[yellow]The continuation token was rejected; list again without --token.[/yellow]")
        _fail(exc)
    except ConsoleError as exc:
        _fail(exc)

    table = Table(title=f"{bucket}/{prefix}")
    table.add_column("Name")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("State")
    for entry in sort_entries(page.entries):
        name = display_name(entry.key, prefix)
        if isinstance(entry, DirectoryEntry):
            table.add_row(Text(name, style="bold blue"), "-", "-", "")
            continue
        state = Text("deleted", style="red") if entry.is_deleted else Text("")
        table.add_row(name, format_size(entry.size), format_last_modified(entry.last_modified), state)
    console.print(table)
    if page.is_truncated and page.next_cursor:
        console.print(f"More results: --token {page.next_cursor}")
    if prefix:
        console.print(f"Up: s3-console ls {bucket} {parent_prefix(prefix)}".rstrip())


@app.command()
def versions(ctx: typer.Context, bucket: str, key: str) -> None:
    """Show the version history of KEY, newest first."""
    try:
        history = _controller(ctx).list_versions(bucket_name=bucket, key=key)
    except ConsoleError as exc:
        _fail(exc)

    table = Table(title=key)
    table.add_column("Version")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("Latest")
    table.add_column("Kind")
    for item in history:
        table.add_row(
            item.version_id,
            "-" if item.is_delete_marker else format_size(item.size),
            format_last_modified(item.last_modified),
            "yes" if item.is_latest else "",
            "delete marker" if item.is_delete_marker else "version",
        )
    console.print(table)


@app.command()
def versioning(
    ctx: typer.Context,
    bucket: str,
    enable: Optional[bool] = typer.Option(None, "--enable/--suspend", help="Change the versioning state."),
) -> None:
    """Show or change bucket versioning."""
    controller = _controller(ctx)
    try:
        if enable is not None:
            controller.set_versioning(bucket, enable)
        status = controller.get_versioning(bucket)
    except ConsoleError as exc:
        _fail(exc)
    console.print(f"{bucket}: {status}")


@app.command()
def mkdir(
    ctx: typer.Context,
    bucket: str,
    name: str,
    prefix: str = typer.Option("", "--in", help="Parent folder, e.g. docs/"),
) -> None:
    """Create a folder placeholder NAME inside the --in folder."""
    try:
        key = _controller(ctx).create_folder(bucket_name=bucket, path=compose_key(prefix, name))
    except (ConsoleError, ValueError) as exc:
        _fail(exc)
    console.print(f"[green]Created[/green] {bucket}/{key}")


@app.command()
def rm(ctx: typer.Context, bucket: str, key: str) -> None:
    """Delete an object or an empty folder."""
    try:
        _controller(ctx).delete_object(bucket_name=bucket, key=key)
    except ConsoleError as exc:
        _fail(exc)
    console.print(f"[green]Deleted[/green] {bucket}/{key}")


@app.command()
def mb(ctx: typer.Context, bucket: str) -> None:
    """Create a bucket."""
    controller = _controller(ctx)
    try:
        if controller.bucket_exists(bucket):
            console.print(f"[yellow]Bucket '{bucket}' already exists.[/yellow]")
            raise typer.Exit(code=1)
        controller.create_bucket(bucket)
    except ConsoleError as exc:
        _fail(exc)
    console.print(f"[green]Created bucket[/green] {bucket}")


@app.command()
def ping(ctx: typer.Context) -> None:
    """Check that the store accepts the current credentials."""
    if not _controller(ctx).test_connection():
        console.print("[red]The store did not accept the connection.[/red]")
        raise typer.Exit(code=1)
    console.print("[green]Connection OK[/green]")


@app.command()
def acl(
    ctx: typer.Context,
    bucket: str,
    key: str,
    canned: Optional[str] = typer.Option(
        None, "--set", help=f"Apply a canned ACL: {', '.join(CANNED_ACLS)}."
    ),
) -> None:
    """Show or change the ACL of an object."""
    controller = _controller(ctx)
    try:
        if canned is not None:
            controller.set_object_acl(bucket_name=bucket, key=key, acl=canned)
        result = controller.get_object_acl(bucket_name=bucket, key=key)
    except (ConsoleError, ValueError) as exc:
        _fail(exc)

    table = Table(title=f"{bucket}/{key} (owner: {result.owner})")
    table.add_column("Grantee")
    table.add_column("Permission")
    for grant in result.grants:
        table.add_row(grant.grantee, grant.permission)
    console.print(table)
    console.print("Public" if result.is_public else "Private")


@app.command()
def presign(
    ctx: typer.Context,
    bucket: str,
    key: str,
    upload: bool = typer.Option(False, "--put", help="Sign an upload instead of a download."),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="Required with --put."),
    version_id: Optional[str] = typer.Option(None, "--version-id", help="Share one version."),
    expires_in: int = typer.Option(3600, "--expires", help="Lifetime in seconds (60 to 604800)."),
) -> None:
    """Print a presigned URL for KEY."""
    try:
        url = _controller(ctx).generate_presigned_url(
            bucket_name=bucket,
            key=key,
            method="put" if upload else "get",
            expires_in=expires_in,
            version_id=version_id,
            content_type=content_type,
        )
    except (ConsoleError, ValueError) as exc:
        _fail(exc)
    typer.echo(url)


@app.command()
def config(
    page_size: Optional[int] = typer.Option(None, "--page-size", help="Keys per listing call (max 1000)."),
    region: Optional[str] = typer.Option(None, "--region"),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
) -> None:
    """Show the saved settings, updating them when options are given."""
    storage = SettingsStorage()
    settings = storage.load()
    changes = {
        name: value
        for name, value in (("page_size", page_size), ("region", region), ("log_level", log_level))
        if value is not None
    }
    if changes:
        settings = sanitize_settings({**asdict(settings), **changes})
        storage.save(settings)
        console.print(f"[green]Saved[/green] {storage.path}")

    table = Table(title=f"Settings ({storage.path})")
    table.add_column("Name")
    table.add_column("Value")
    for name, value in asdict(settings).items():
        table.add_row(name, str(value))
    console.print(table)

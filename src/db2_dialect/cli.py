"""Command line access to the Db2 dialect."""
import asyncio
import json
import sys
import traceback
from functools import wraps
from typing import Any, Awaitable, Callable, List, Optional

import typer
from pydantic import BaseModel
from rich.console import Console
from rich.table import Table
from rich.theme import Theme
from typing_extensions import Annotated

from db2_dialect.common.errors import DialectError
from db2_dialect.common.logger import configure_logging
from db2_dialect.common.settings import settings
from db2_dialect.dialect import Db2Dialect
from db2_dialect.driver.native import DRIVER_PACKAGE, DRIVER_VERSION, check_dependencies
from db2_dialect.models import Db2Credentials, QueryResult

console = Console(theme=Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
}))

app = typer.Typer(
    name="db2-dialect",
    help="Run SQL and catalog lookups against IBM Db2.",
    no_args_is_help=True,
    add_completion=False,
)

JsonOption = Annotated[bool, typer.Option("--json", help="Print results as JSON")]


def handle_cli_errors(func):
    """Prints DialectError as a one-line message and exits with status 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DialectError as e:
            console.print(f"[error]Error:[/error] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[warning]Operation cancelled by user.[/warning]")
            sys.exit(130)
        except Exception as e:
            console.print(f"[error]Unexpected Error:[/error] {e}")
            console.print(traceback.format_exc())
            sys.exit(1)

    return wrapper


@app.callback()
def global_callback(
    ctx: typer.Context,
    server: Annotated[Optional[str], typer.Option(envvar="DB2_SERVER", help="Db2 host name")] = None,
    port: Annotated[int, typer.Option(envvar="DB2_PORT", help="Db2 port")] = 50000,
    database: Annotated[Optional[str], typer.Option(envvar="DB2_DATABASE", help="Database name")] = None,
    username: Annotated[Optional[str], typer.Option(envvar="DB2_USERNAME", help="User id")] = None,
    password: Annotated[Optional[str], typer.Option(envvar="DB2_PASSWORD", help="Password")] = None,
    connect_string: Annotated[
        Optional[str],
        typer.Option("--connect-string", envvar="DB2_CONNECT_STRING", help="Pre-built connection string"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log at DEBUG level")] = False,
):
    """
    Db2 dialect CLI entry point.
    """
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_json,
    )
    ctx.obj = Db2Credentials(
        name="cli",
        server=server,
        port=port,
        database=database,
        username=username,
        password=password,
        connect_string=connect_string,
    )


def _run(credentials: Db2Credentials, action: Callable[[Db2Dialect], Awaitable[Any]]) -> Any:
    async def _session():
        dialect = Db2Dialect(credentials)
        try:
            return await action(dialect)
        finally:
            await dialect.close()

    return asyncio.run(_session())


def _print_json(items: List[BaseModel]) -> None:
    console.print_json(json.dumps([item.model_dump(by_alias=True) for item in items], default=str))


def _print_results(results: List[QueryResult]) -> None:
    for result in results:
        console.print(f"[info]{result.query}[/info]")
        for message in result.messages:
            console.print(message)
        if result.cols:
            table = Table(show_header=True, header_style="bold magenta")
            for col in result.cols:
                table.add_column(col)
            for row in result.results:
                table.add_row(*[str(row.get(col, "")) for col in result.cols])
            console.print(table)


@app.command()
@handle_cli_errors
def query(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="SQL text, one or more statements")],
    as_json: JsonOption = False,
):
    """
    Run one or more SQL statements.
    """
    results = _run(ctx.obj, lambda dialect: dialect.query(text))
    if as_json:
        _print_json(results)
    else:
        _print_results(results)


@app.command()
@handle_cli_errors
def test(ctx: typer.Context):
    """
    Check that a session can be opened and a trivial query runs.
    """
    _run(ctx.obj, lambda dialect: dialect.test_connection())
    console.print("[success]✔ Connection OK.[/success]")


@app.command()
@handle_cli_errors
def tables(ctx: typer.Context, as_json: JsonOption = False):
    """
    List tables and views.
    """
    items = _run(ctx.obj, lambda dialect: dialect.get_tables())
    if as_json:
        _print_json(items)
        return
    table = Table(title="Tables")
    table.add_column("Schema", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("View")
    table.add_column("Columns", justify="right")
    for item in items:
        table.add_row(item.table_schema or "", item.name, "yes" if item.is_view else "", str(item.number_of_columns or ""))
    console.print(table)


@app.command()
@handle_cli_errors
def columns(ctx: typer.Context, as_json: JsonOption = False):
    """
    List columns of every table.
    """
    items = _run(ctx.obj, lambda dialect: dialect.get_columns())
    if as_json:
        _print_json(items)
        return
    table = Table(title="Columns")
    table.add_column("Table", style="cyan")
    table.add_column("Column", style="magenta")
    table.add_column("Type")
    table.add_column("Nullable")
    table.add_column("Key")
    for item in items:
        key = "PK" if item.is_pk else "FK" if item.is_fk else ""
        nullable = "?" if item.is_nullable is None else "yes" if item.is_nullable else "no"
        table.add_row(f"{item.table_schema}.{item.table_name}", item.column_name, item.type or "", nullable, key)
    console.print(table)


@app.command()
@handle_cli_errors
def functions(ctx: typer.Context, as_json: JsonOption = False):
    """
    List user-defined functions.
    """
    items = _run(ctx.obj, lambda dialect: dialect.get_functions())
    if as_json:
        _print_json(items)
        return
    table = Table(title="Functions")
    table.add_column("Schema", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Arguments")
    table.add_column("Returns")
    for item in items:
        table.add_row(item.schema_name or "", item.name, ", ".join(item.args), item.result_type or "")
    console.print(table)


@app.command()
@handle_cli_errors
def describe(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table as SCHEMA.TABLE")],
    as_json: JsonOption = False,
):
    """
    Describe the columns of one table.
    """
    results = _run(ctx.obj, lambda dialect: dialect.describe_table(table_name))
    if as_json:
        _print_json(results)
    else:
        _print_results(results)


@app.command()
def doctor():
    """
    Check that the native driver is installed.
    """
    try:
        check_dependencies()
    except DialectError as e:
        console.print(f"[error]✘ {e}[/error]")
        raise typer.Exit(code=1)
    console.print(f"[success]✔ {DRIVER_PACKAGE} installed (>= {DRIVER_VERSION} required).[/success]")


def main():
    app()


if __name__ == "__main__":
    main()

from __future__ import annotations
import asyncio
import logging
from typing import List, Optional, Tuple
import typer
from core.container import ApplicationContainer
from core.dialects import get_dialect
from core.error_classifier import classify as classify_code
from core.exceptions import (
    ArgumentError,
    ConfigurationError,
    DatabaseExecutionError,
    StateError,
)
from core.models import ExecutionResult
from core.query import Query
from utils.config import AppConfig, load_config

app = typer.Typer(add_completion=False, help="Multi-query database client CLI.")


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(config.log_file),
        ],
    )


def _split_mutation(mutation: str) -> Tuple[str, List[str]]:
    """Parse ``TYPES:ARG,ARG`` as used by --repeat."""
    types, _, raw = mutation.partition(":")
    return types, raw.split(",") if raw else []


@app.command()
def classify(
    engine: str = typer.Argument(..., help="Engine family, e.g. mariadb or mssql."),
    code: int = typer.Argument(..., help="Native error code."),
    sqlstate: Optional[str] = typer.Option(None, "--sqlstate", help="Optional SQLSTATE."),
) -> None:
    """Classify a native error code."""
    typer.echo(classify_code(engine, code, sqlstate).value)


@app.command()
def render(
    sql: str = typer.Argument(..., help="Base SQL with ?-parameter markers."),
    arguments: Optional[List[str]] = typer.Argument(None, help="Arguments for the base SQL."),
    types: str = typer.Option("", "--types", "-t", help="Type chars i|d|s|b, one per argument."),
    engine: str = typer.Option("mariadb", "--engine", "-e", help="Engine family."),
    repeat: Optional[List[str]] = typer.Option(
        None, "--repeat", "-r", help="Repeat base SQL with TYPES:ARG,ARG (repeatable)."
    ),
    append: Optional[List[str]] = typer.Option(
        None, "--append", "-a", help="Append a statement without parameters (repeatable)."
    ),
) -> None:
    """Print the SQL a query would send, after substitution and mutations."""
    try:
        query = Query(sql, dialect=get_dialect(engine))
        if arguments or types:
            query.bind(types, arguments or [])
        for mutation in repeat or []:
            repeat_types, repeat_args = _split_mutation(mutation)
            query.repeat(repeat_types, repeat_args)
        for appendix in append or []:
            query.append(appendix, "", [])
    except (ArgumentError, StateError, ConfigurationError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(query.effective_sql)


@app.command()
def execute(
    sql: str = typer.Argument(..., help="SQL to execute."),
    arguments: Optional[List[str]] = typer.Argument(None, help="Arguments for ?-parameters."),
    types: str = typer.Option("", "--types", "-t", help="Type chars i|d|s|b, one per argument."),
) -> None:
    """Execute a single query and print its rows."""

    async def _run() -> ExecutionResult:
        config = load_config()
        configure_logging(config)
        container = ApplicationContainer(config)
        async with container.lifespan() as database:
            query = database.query(sql)
            if arguments or types:
                query.bind(types, arguments or [])
            return await database.execute(query)

    try:
        result = asyncio.run(_run())
    except ConfigurationError as exc:
        typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except (ArgumentError, StateError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except DatabaseExecutionError as exc:
        typer.secho(f"{exc.category}: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=2)
    except KeyboardInterrupt:
        typer.echo("\nInterrupted.")
        return

    for index, result_set in enumerate(result.result_sets, start=1):
        typer.echo(f"Result set {index} ({result_set.row_count} row(s), {result_set.affected_rows} affected):")
        for row in result_set.rows:
            typer.echo(f"  {row}")


@app.command()
def health() -> None:
    """Perform a basic connectivity check."""

    async def _run() -> str:
        config = load_config()
        configure_logging(config)
        container = ApplicationContainer(config)
        async with container.lifespan() as database:
            result = await database.execute(database.query("SELECT 1"))
        return "ok" if result.result_sets else "warning: no result returned"

    try:
        status = asyncio.run(_run())
        typer.echo(f"Health check: {status}")
    except ConfigurationError as exc:
        typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except DatabaseExecutionError as exc:
        typer.echo(f"Health check failed ({exc.category}): {exc}")
        raise typer.Exit(code=1)


@app.callback()
def main() -> None:
    """Entry point for the CLI."""


if __name__ == "__main__":
    app()

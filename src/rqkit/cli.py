"""CLI interface for rqkit"""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

import click

from rqkit.application.client import Client
from rqkit.application.middleware import logging_middleware
from rqkit.domain.config import AppConfig
from rqkit.domain.models.context import ExecutionContext
from rqkit.domain.models.request import Request
from rqkit.infrastructure.config.config_manager import ConfigManager, ConfigurationError
from rqkit.infrastructure.retry import RetryPolicy

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    # urllib3 connection chatter only in verbose mode
    logging.getLogger("urllib3").setLevel(level if verbose else logging.WARNING)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _apply_overrides(
    config: AppConfig,
    timeout: Optional[float],
    retries: Optional[int],
    dump: bool,
) -> AppConfig:
    """Apply CLI overrides on top of file/env configuration

    Args:
        config: Loaded configuration
        timeout: Per-attempt timeout override
        retries: Max attempts override
        dump: Enable request/response dumps

    Returns:
        New validated configuration
    """
    client_update = {}
    if timeout is not None:
        client_update["timeout"] = timeout
    if dump:
        client_update["dump"] = True
    retry_update = {}
    if retries is not None:
        retry_update["max_attempts"] = retries

    data = config.model_dump()
    data["client"].update(client_update)
    data["retry"].update(retry_update)
    return AppConfig(**data)


def _parse_headers(request: Request, headers: Tuple[str, ...]) -> None:
    for header in headers:
        key, sep, value = header.partition(":")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected 'Key: Value', got {header!r}", param_hint="--header")
        request.header(key.strip(), value.strip())


def _parse_query(request: Request, params: Tuple[str, ...]) -> None:
    for param in params:
        key, sep, value = param.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected 'key=value', got {param!r}", param_hint="--query")
        request.query_param(key, value)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .rqkit.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """rqkit - HTTP requests with retries"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("method")
@click.argument("url")
@click.option("--header", "-H", "headers", multiple=True, help="Request header 'Key: Value' (repeatable)")
@click.option("--query", "-q", "query", multiple=True, help="Query parameter 'key=value' (repeatable)")
@click.option("--data", "-d", type=str, help="Raw request body")
@click.option("--json", "json_body", type=str, help="JSON request body")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Per-attempt timeout in seconds")
@click.option("--retries", type=click.IntRange(min=1), help="Maximum attempts. Overrides config.")
@click.option("--no-retry", is_flag=True, help="Make exactly one attempt")
@click.option("--dump", is_flag=True, help="Log full request/response dumps")
@click.option("--expect-status", type=int, help="Fail unless the final status matches")
@click.option("--include", "-i", is_flag=True, help="Print status line and response headers")
@click.pass_context
def send(
    ctx,
    method: str,
    url: str,
    headers: Tuple[str, ...],
    query: Tuple[str, ...],
    data: Optional[str],
    json_body: Optional[str],
    timeout: Optional[float],
    retries: Optional[int],
    no_retry: bool,
    dump: bool,
    expect_status: Optional[int],
    include: bool,
):
    """Send METHOD request to URL, retrying per configuration"""
    verbose = ctx.obj.get("verbose", False)

    if data is not None and json_body is not None:
        raise click.UsageError("--data and --json are mutually exclusive")

    try:
        config_manager = ConfigManager(ctx.obj.get("config_path"))
        config = _apply_overrides(config_manager.config, timeout, retries, dump)
    except (ConfigurationError, ValueError) as e:
        _die(str(e), verbose=verbose, exc=e)

    policy: Optional[RetryPolicy] = RetryPolicy(max_attempts=1) if no_retry else None

    with Client.from_config(config, middleware=[logging_middleware(logger)]) as client:
        request = client.new(method, url)
        _parse_headers(request, headers)
        _parse_query(request, query)
        if data is not None:
            request.body_string(data)
        if json_body is not None:
            try:
                request.body_json(json.loads(json_body))
            except ValueError as e:
                raise click.BadParameter(f"invalid JSON: {e}", param_hint="--json") from e

        resp = client.execute_with_retry(request, ExecutionContext(), policy)

    if resp.error is not None and resp.status_code is None:
        _die(f"Request failed after {resp.attempts} attempt(s): {resp.error}", verbose=verbose)

    if include:
        reason = resp.raw.reason if resp.raw is not None else ""
        click.echo(f"HTTP {resp.status_code} {reason}".rstrip())
        for key, value in resp.headers.items():
            click.echo(f"{key}: {value}")
        click.echo("")

    click.echo(resp.content.decode("utf-8", errors="replace"))

    if resp.error is not None:
        _die(f"Request failed after {resp.attempts} attempt(s): {resp.error}", verbose=verbose)

    if expect_status is not None:
        error = resp.expect_status(expect_status)
        if error is not None:
            _die(str(error), verbose=verbose)

    logger.info(f"Completed in {resp.attempts} attempt(s) with status {resp.status_code}")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()

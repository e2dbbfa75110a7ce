"""Command line interface for sending single requests."""

import logging
import sys

import click
import httpx
import structlog

from courier.config import InstanceConfig, RequestConfig
from courier.constants import VERSION
from courier.errors import CourierError
from courier.instance import Instance
from courier.observability.logging import configure_logging
from courier.settings import get_settings
from courier.stats import get_stats
from courier.values import Values


logger = structlog.get_logger()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _split_pairs(
    pairs: tuple[str, ...], separator: str, option: str
) -> list[tuple[str, str]]:
    """Split ``key<sep>value`` option values.

    Raises:
        click.BadParameter: If a value has no separator.
    """
    result: list[tuple[str, str]] = []
    for pair in pairs:
        key, sep, value = pair.partition(separator)
        if not sep or not key.strip():
            msg = f"expected KEY{separator}VALUE, got {pair!r}"
            raise click.BadParameter(msg, param_hint=option)
        result.append((key.strip(), value.strip() if separator == ":" else value))
    return result


@click.group()
@click.version_option(version=VERSION)
def cli() -> None:
    """Courier HTTP request CLI."""


@cli.command()
@click.argument("method")
@click.argument("url")
@click.option("--base-url", default=None, help="Base URL joined with relative URLs.")
@click.option(
    "--header",
    "-H",
    "headers",
    multiple=True,
    help="Request header as 'Name: value' (repeatable).",
)
@click.option(
    "--query",
    "-q",
    "queries",
    multiple=True,
    help="Query value as key=value (repeatable).",
)
@click.option("--data", "-d", default=None, help="Request body.")
@click.option("--timeout", type=float, default=None, help="Timeout in seconds.")
@click.option("--trace", is_flag=True, help="Collect connection timings.")
@click.option("--curl", "show_curl", is_flag=True, help="Print the cURL command only.")
@click.option("--stats", "show_stats", is_flag=True, help="Print the stats record as JSON.")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Log level (default: WARNING).",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Use JSON format for logs (default: false).",
)
def request(  # noqa: PLR0913
    method: str,
    url: str,
    base_url: str | None,
    headers: tuple[str, ...],
    queries: tuple[str, ...],
    data: str | None,
    timeout: float | None,
    trace: bool,
    show_curl: bool,
    show_stats: bool,
    log_level: str,
    json_logs: bool,
) -> None:
    """Send METHOD to URL and print the status and body."""
    configure_logging(level=getattr(logging, log_level.upper()), json_format=json_logs)

    instance_config = InstanceConfig.from_settings(get_settings())
    if base_url is not None:
        instance_config.base_url = base_url
    if timeout is not None:
        instance_config.timeout = timeout
    if trace:
        instance_config.enable_trace = True

    config = RequestConfig(url=url, method=method.upper(), body=data)
    if headers:
        config.headers = httpx.Headers(_split_pairs(headers, ":", "--header"))
    if queries:
        query = Values()
        for key, value in _split_pairs(queries, "=", "--query"):
            query.add(key, value)
        config.query = query

    if show_curl:
        if not config.base_url:
            config.base_url = instance_config.base_url
        click.echo(config.curl())
        return

    instance = Instance(instance_config)
    error: CourierError | None = None
    try:
        resp = instance.request(config)
    except CourierError as e:
        error = e
    else:
        click.echo(f"{resp.status}")
        click.echo(resp.data.decode("utf-8", errors="replace"))

    if show_stats:
        click.echo(get_stats(config, error).model_dump_json(by_alias=True))

    if error is not None:
        logger.debug("cli_request_failed", error=error.to_dict())
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()

import argparse
import logging
import sys
from functools import partial

import click
import httpx

from envoy_read.config import Settings
from envoy_read.engine import inspect_proxy
from envoy_read.errors import EnvoyReadError
from envoy_read.fetch import admin_api_fetcher, read_raw_file
from envoy_read.models import FilterParams, Kind
from envoy_read.render import OutputMode


# Configure logging
def setup_logging(log_level):
    """
    Sets up application logging with a specified logging level.

    Log records go to stderr so they never mix with rendered output. An
    unknown level name falls back to ``INFO``.

    :param log_level: A standard logging level name such as ``"DEBUG"``.
    :type log_level: str
    :return: None
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    logging.debug("Logging setup complete.")


def build_parser(settings):
    parser = argparse.ArgumentParser(
        prog="envoy-read",
        description="Inspect the Envoy configuration of a sidecar proxy.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--admin-api",
        default=settings.admin_api,
        help="Base URL of the Envoy admin API (default: %(default)s)",
    )
    source.add_argument("--file", help="Read a saved config dump instead of the admin API")
    # Not restricted with choices: an unknown mode is reported by the engine.
    parser.add_argument(
        "-o",
        "--output",
        default=settings.output,
        help="Output the Envoy configuration as 'table', 'json', or 'raw'.",
    )

    filtering = parser.add_argument_group("Output Filtering Options")
    for kind in Kind:
        filtering.add_argument(
            f"--{kind.value}",
            action="store_true",
            help=f"Filter output to only show {kind.value}.",
        )
    filtering.add_argument(
        "--fqdn",
        default="",
        help="Filter cluster output to only clusters with a fully qualified domain name which contains the given value.",
    )
    filtering.add_argument(
        "--address",
        default="",
        help="Filter clusters, endpoints, and listeners output to only those with addresses which contain the given value.",
    )
    filtering.add_argument(
        "--port",
        type=int,
        default=-1,
        help="Filter endpoints output to only endpoints with the given port number.",
    )

    parser.add_argument("--no-color", action="store_true", help="Disable colored table output")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.log_level.upper(),
        help="Set the logging level",
    )
    return parser


def _report(message, color):
    click.echo(click.style("Error:", fg="red", bold=True) + f" {message}", err=True, color=color)


def main(argv=None):
    """
    Entry point of the ``envoy-read`` command.

    Fetches the config dump (from the admin API or a file), renders it in
    the requested mode and writes it to stdout. Any error, including a
    section that could not be extracted, is written to stderr and makes the
    command exit with status 1.

    :param argv: Arguments to parse instead of ``sys.argv[1:]``.
    :type argv: list[str] | None
    :return: The process exit status.
    :rtype: int
    """
    settings = Settings()
    args = build_parser(settings).parse_args(argv)
    setup_logging(args.log_level)

    color = not args.no_color and sys.stdout.isatty()
    params = FilterParams(
        fqdn=args.fqdn,
        address=args.address,
        port=args.port,
        **{kind.value: getattr(args, kind.value) for kind in Kind},
    )
    if args.file:
        fetch = partial(read_raw_file, args.file)
    else:
        fetch = admin_api_fetcher(settings, args.admin_api)

    try:
        result = inspect_proxy(fetch, params, args.output, color=color)
    except (EnvoyReadError, httpx.HTTPError, OSError) as err:
        _report(err, color)
        return 1

    click.echo(result.output, nl=args.output != OutputMode.RAW.value)
    for err in result.errors.values():
        _report(err, color)
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())

"""
jsonnetize CLI

Renders the Jsonnet sources of a kustomization tree into a mirrored output
tree and runs ``kustomize build`` on the result.
"""

import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from jsonnetize.config_manager import create_config_from_env, setup_logging
from jsonnetize.driver import materialize
from jsonnetize.exceptions import JsonnetizeError
from jsonnetize.report import ResolutionReport

logger = logging.getLogger(__name__)

# stdout carries the kustomize output
console = Console(stderr=True)


def exit_with_error(message: str, code: int = 1) -> None:
    """Exit with error message."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)


def print_report(report: ResolutionReport) -> None:
    table = Table(title=f"{report.input_root} -> {report.output_root}")
    table.add_column("Item")
    table.add_column("Count", justify="right")
    for label, value in report.summary_rows():
        table.add_row(label, str(value))
    console.print(table)


@click.command(name="jsonnetize")
@click.argument("path", type=click.Path())
@click.option(
    "--output",
    "-o",
    default=None,
    help="Location to replicate the kustomization (default: current directory)",
)
@click.option(
    "--log-level",
    default=None,
    help="Logging level (DEBUG, INFO, WARNING, ERROR); defaults to LOG_LEVEL or INFO",
)
@click.option(
    "--skip-build",
    is_flag=True,
    help="Materialize the tree without running kustomize build",
)
def main(path: str, output: Optional[str], log_level: Optional[str], skip_build: bool):
    """Render the Jsonnet in a kustomization tree, then kustomize build it.

    PATH is a kustomization directory or its kustomization.yml/.yaml file.

    Examples:

        # Materialize into ./out and build
        jsonnetize overlays/prod --output ./out

        # Only materialize
        jsonnetize overlays/prod/kustomization.yml -o ./out --skip-build
    """
    try:
        config = create_config_from_env(output, log_level, skip_build)
    except ValueError as e:
        exit_with_error(str(e))
        return

    setup_logging(config.logging)
    config.log_configuration_summary()

    try:
        report = materialize(path, config)
    except JsonnetizeError as e:
        logger.debug(f"Run failed: {e.to_dict()}")
        exit_with_error(str(e))
        return

    print_report(report)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""JSON Field Mapper - Entry point."""
import logging
import sys

import click
from colorama import Fore, Style, init

from config import app_config
from jsonmap.cli.runner import MapperCLI

# Initialize colorama
init(autoreset=True)


def print_banner():
    """Print application banner."""
    click.echo(f"{Fore.CYAN}{'=' * 44}", err=True)
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}JSON Field Mapper{Fore.CYAN}                    ║", err=True)
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}Declarative JSON Transformation{Fore.CYAN}      ║", err=True)
    click.echo(f"{Fore.CYAN}{'=' * 44}{Style.RESET_ALL}", err=True)
    click.echo(err=True)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, app_config.log_level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """JSON Field Mapper - Map and transform JSON documents declaratively."""
    configure_logging(verbose)


@cli.command()
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--input", "-i", "input_location", help="Source document (file path or URL)")
@click.option(
    "--source",
    "-s",
    "sources",
    multiple=True,
    help="Source document for a source id, as ID=LOCATION (repeatable)",
)
@click.option("--output", "-o", "output_file", type=click.Path(dir_okay=False), help="Write output to file")
@click.option("--limit", type=int, default=None, help="Process at most N items per source (preview)")
def apply(config_file, input_location, sources, output_file, limit):
    """Apply a mapping configuration to source data."""
    cli_tool = MapperCLI()
    if not cli_tool.apply(config_file, input_location, list(sources), output_file, limit):
        sys.exit(1)


@cli.command()
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def validate(config_file):
    """Validate a mapping configuration."""
    print_banner()

    cli_tool = MapperCLI()
    if not cli_tool.validate(config_file):
        sys.exit(1)


@cli.command()
@click.argument("location")
@click.option("--primary-path", "-p", default="", help="Path of the items inside the document")
@click.option("--max-depth", type=int, default=None, help="Maximum nesting depth to walk")
def fields(location, primary_path, max_depth):
    """List the mappable fields of a source document."""
    print_banner()

    cli_tool = MapperCLI()
    if not cli_tool.fields(location, primary_path, max_depth):
        sys.exit(1)


@cli.command()
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--input", "-i", "input_location", required=True, help="Sample source document (file path or URL)")
@click.option("--threshold", type=float, default=None, help="Minimum name similarity (0-1)")
@click.option("--save", is_flag=True, help="Add the proposed mappings to the configuration file")
def automap(config_file, input_location, threshold, save):
    """Propose mappings by field-name similarity."""
    print_banner()

    cli_tool = MapperCLI()
    if not cli_tool.automap(config_file, input_location, threshold, save):
        sys.exit(1)


@cli.command()
@click.argument("transform_type")
@click.argument("value")
@click.option("--config", "-c", "config_json", default=None, help="Transformation config as JSON")
def transform(transform_type, value, config_json):
    """Apply one transformation to a value."""
    cli_tool = MapperCLI()
    if not cli_tool.transform(transform_type, value, config_json):
        sys.exit(1)


if __name__ == "__main__":
    cli()

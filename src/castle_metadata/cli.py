"""Command-line interface for castle-metadata."""

import asyncio
import json
import socket
import sys
from pathlib import Path

import click
import httpx
import structlog
import yaml

from castle_metadata import __version__
from castle_metadata.config import load_config
from castle_metadata.core.fetcher import parse_source_file
from castle_metadata.errors import MetadataError, MetadataParseError
from castle_metadata.resolver import MetadataResolver
from castle_metadata.utils.logger import setup_logging

EXIT_POLICY_ERROR = 2
EXIT_PARSE_ERROR = 3
EXIT_NETWORK_ERROR = 4


def _render(data: dict, output_format: str) -> str:
    if output_format == "yaml":
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    return json.dumps(data, indent=2, ensure_ascii=False)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (defaults to built-in defaults)",
)
@click.pass_context
def cli(ctx, config):
    """castle-metadata - Resolve Castle package metadata from a URL."""
    try:
        cfg = load_config(config)
        ctx.ensure_object(dict)
        ctx.obj["config"] = cfg

        setup_logging(cfg.logging)

    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.option(
    "--allow-private-urls/--no-allow-private-urls",
    default=None,
    help="Allow fetching URLs on private networks (default: from config)",
)
@click.option(
    "--include-source-code/--no-include-source-code",
    default=None,
    help="Include the source of self-hosting games (default: from config)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="Output format",
)
@click.pass_context
def resolve(ctx, url, allow_private_urls, include_source_code, output_format):
    """Resolve metadata for a game URL.

    Args:
        url: URL of a .castle file or a Lua entry point
    """
    config = ctx.obj["config"]
    logger = structlog.get_logger(__name__)

    async def _resolve():
        async with MetadataResolver(config) as resolver:
            return await resolver.resolve(
                url,
                allow_private_urls=allow_private_urls,
                include_source_code=include_source_code,
            )

    try:
        metadata = asyncio.run(_resolve())
    except MetadataError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(EXIT_POLICY_ERROR)
    except MetadataParseError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(EXIT_PARSE_ERROR)
    except (socket.gaierror, httpx.HTTPError) as e:
        logger.error("Network error while resolving metadata", url=url, error=str(e))
        click.secho(f"✗ Network error: {e}", fg="red", err=True)
        sys.exit(EXIT_NETWORK_ERROR)

    click.echo(_render(metadata.to_dict(), output_format))


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="Output format",
)
def extract(file, output_format):
    """Show the metadata embedded in a local Lua file.

    Args:
        file: Path to the Lua source file
    """
    source = file.read_text(encoding="utf-8", errors="replace")

    try:
        metadata = parse_source_file(source)
    except MetadataParseError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(EXIT_PARSE_ERROR)

    if metadata is None:
        click.secho(f"⊘ No metadata found in {file.name}", fg="yellow")
        return

    click.echo(_render(metadata, output_format))


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()

"""Command-line entry point.

Installed as the ``nekoweb-deploy`` command. Run it as the last step of a
static site build::

    nekoweb-deploy dist/ --folder build

Credentials come from ``NEKOWEB_API_KEY`` and ``NEKOWEB_COOKIE`` (or a
``.env`` file) so they stay out of shell history.
"""

import asyncio
import sys
from pathlib import Path

import click

from nekoweb_deploy import __version__
from nekoweb_deploy.config import get_settings
from nekoweb_deploy.core.exceptions import NekowebDeployError
from nekoweb_deploy.core.orchestrator import DeploymentOrchestrator
from nekoweb_deploy.models.deployment import DeploymentRequest
from nekoweb_deploy.utils.logging import configure_logging


@click.command(
    name="nekoweb-deploy",
    help="Publish a finished static site build to Nekoweb.",
)
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--folder",
    default=None,
    help="Serve folder on Nekoweb. Discovered from site info when omitted.",
)
@click.option(
    "--api-key",
    default=None,
    help="Nekoweb API key. Prefer the NEKOWEB_API_KEY environment variable.",
)
@click.option(
    "--cookie",
    default=None,
    help="Nekoweb account cookie, enables the recently updated signal. "
    "Prefer the NEKOWEB_COOKIE environment variable.",
)
@click.option(
    "--rss-feed",
    "rss_feed_path",
    default=None,
    help="Feed file to touch, relative to DIRECTORY (e.g. rss.xml).",
)
@click.option(
    "--discover-rss/--no-discover-rss",
    default=None,
    help="Touch the first .xml file in the build when --rss-feed is not given.",
)
@click.option(
    "--site-name",
    default=None,
    help="Site (username) to look up when discovering the serve folder.",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default=None,
    help="Log output format.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.version_option(__version__, prog_name="nekoweb-deploy")
def main(
    directory: Path,
    folder: str | None,
    api_key: str | None,
    cookie: str | None,
    rss_feed_path: str | None,
    discover_rss: bool | None,
    site_name: str | None,
    log_format: str | None,
    verbose: bool,
) -> None:
    """CLI entry point: wires options into DeploymentOrchestrator."""
    settings = get_settings()
    configure_logging(level="DEBUG" if verbose else None, log_format=log_format)

    request = DeploymentRequest.from_settings(
        settings,
        directory,
        target_folder=folder,
        api_key=api_key,
        cookie=cookie,
        rss_feed_path=rss_feed_path,
        discover_rss=discover_rss,
        site_name=site_name,
    )

    orchestrator = DeploymentOrchestrator(settings=settings)
    try:
        result = asyncio.run(orchestrator.run(request))
    except NekowebDeployError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    click.echo(f"Deployed {directory} to /{result.folder} in {result.duration_ms} ms.")
    if result.metadata_updated:
        click.echo("Recently updated signal sent.")
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)


if __name__ == "__main__":
    main()

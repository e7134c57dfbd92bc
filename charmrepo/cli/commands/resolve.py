from pathlib import Path
from typing import Optional

import typer

from charmrepo.cli import core
from charmrepo.internal.logging import get_logger
from charmrepo.kernel.errors import CharmRepoError

logger = get_logger(__name__)


def resolve(
    ref: str = typer.Argument(..., help="Reference to pin to a concrete revision."),
    series: str = typer.Option("", "--series", "-s", help="Series to use when the reference has none."),
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir"),
    registry_url: Optional[str] = typer.Option(None, "--registry-url"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Resolve a reference to its latest revision.
    """
    core.configure(verbose)
    try:
        reference = core.parse_reference(ref, series)
        with core.repository_for(reference, core.load_settings(cache_dir, registry_url)) as repo:
            resolved, supported_series = repo.resolve(reference)
    except CharmRepoError as exc:
        logger.error("resolve failed", ref=ref, error=str(exc))
        typer.echo(f"Could not resolve {ref}: {exc}", err=True)
        raise typer.Exit(1)

    typer.echo(str(resolved))
    if supported_series:
        typer.echo(f"Supported series: {', '.join(supported_series)}")


if __name__ == "__main__":
    typer.run(resolve)

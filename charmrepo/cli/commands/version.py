import importlib.metadata

import typer

from charmrepo.internal.logging import get_logger

logger = get_logger(__name__)


def version():
    """
    Show the charmrepo version.
    """
    try:
        # Only available once the package is installed
        package_version = importlib.metadata.version("charmrepo")
        typer.echo(f"charmrepo version: {package_version}")
    except importlib.metadata.PackageNotFoundError:
        typer.echo("charmrepo is not installed or version metadata not found.")
        typer.echo("Please install the package first (e.g., pip install . or pip install -e .)")
        logger.warning("charmrepo package version not found.")
        raise typer.Exit(1)


if __name__ == "__main__":
    typer.run(version)

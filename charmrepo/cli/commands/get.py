from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from charmrepo.cli import core
from charmrepo.internal.logging import get_logger
from charmrepo.kernel.errors import CharmRepoError

logger = get_logger(__name__)
console = Console()


def get(
    ref: str = typer.Argument(..., help="Charm or bundle reference, or '<git-remote>[?<pointer>]'."),
    series: str = typer.Option("", "--series", "-s", help="Series to use when the reference has none."),
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir", help="Archive cache directory."),
    registry_url: Optional[str] = typer.Option(None, "--registry-url", help="Charm store endpoint."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Fetch a charm or bundle and print where it was read from.
    """
    core.configure(verbose)
    try:
        reference = core.parse_reference(ref, series)
        with core.repository_for(reference, core.load_settings(cache_dir, registry_url)) as repo:
            if reference.is_bundle:
                bundle = repo.get_bundle(reference)
                console.print(f"[green]Bundle {reference} ready.[/green]")
                console.print(f"[dim]Source:[/dim] {bundle.source}")
            else:
                charm = repo.get(reference)
                console.print(f"[green]Charm {charm.meta.name} (revision {charm.revision}) ready.[/green]")
                console.print(f"[dim]Source:[/dim] {charm.source}")
    except CharmRepoError as exc:
        logger.error("get failed", ref=ref, error=str(exc))
        console.print(f"[red]Get failed:[/red] {exc}")
        raise typer.Exit(1)


if __name__ == "__main__":
    typer.run(get)

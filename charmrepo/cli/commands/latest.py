from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from charmrepo.cli import core
from charmrepo.internal.logging import get_logger
from charmrepo.kernel.errors import CharmRepoError

logger = get_logger(__name__)
console = Console()


def latest(
    refs: List[str] = typer.Argument(..., help="Charm store references to check."),
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir"),
    registry_url: Optional[str] = typer.Option(None, "--registry-url"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Show the latest revision of each reference.
    """
    core.configure(verbose)
    try:
        references = [core.parse_reference(raw) for raw in refs]
        if any(ref.is_remote for ref in references):
            console.print("[red]latest only accepts charm store references.[/red]")
            raise typer.Exit(1)
        with core.repository_for(references[0], core.load_settings(cache_dir, registry_url)) as repo:
            revisions = repo.latest(*references)
    except CharmRepoError as exc:
        logger.error("latest failed", error=str(exc))
        console.print(f"[red]Latest failed:[/red] {exc}")
        raise typer.Exit(1)

    table = Table(title="Latest Revisions")
    table.add_column("Reference", style="cyan", no_wrap=True)
    table.add_column("Revision", justify="right", style="green")
    table.add_column("SHA-256")

    for ref, info in zip(references, revisions):
        if info.ok:
            table.add_row(ref.stripped(), str(info.revision), info.hash)
        else:
            table.add_row(ref.stripped(), "-", f"[red]{info.error}[/red]")
    console.print(table)


if __name__ == "__main__":
    typer.run(latest)

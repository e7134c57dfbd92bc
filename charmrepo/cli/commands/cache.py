from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from charmrepo.adapters.cache_fs import CacheStore
from charmrepo.cli import core

console = Console()


def cache(
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir"),
):
    """
    List the archives in the local cache.
    """
    store = CacheStore(core.load_settings(cache_dir).cache_dir)
    entries = store.list_entries()
    if not entries:
        console.print(f"[yellow]No cached archives in {store.cache_dir}.[/yellow]")
        return

    table = Table(title=f"Cached Archives ({store.cache_dir})")
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Size", justify="right", style="green")
    for entry in entries:
        table.add_row(entry.name, entry.suffix.lstrip("."), f"{entry.stat().st_size} B")
    console.print(table)


if __name__ == "__main__":
    typer.run(cache)

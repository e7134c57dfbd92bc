import typer

from charmrepo.cli.commands import (
    cache,
    get,
    latest,
    resolve,
    version,
)

app = typer.Typer(
    name="charmrepo",
    help="Fetch and verify charms and bundles from a charm store or a git remote.",
    no_args_is_help=True
)

app.command("get")(get.get)
app.command("resolve")(resolve.resolve)
app.command("latest")(latest.latest)
app.command("cache")(cache.cache)
app.command("version")(version.version)

if __name__ == "__main__":
    app()

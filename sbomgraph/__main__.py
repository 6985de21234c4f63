import typer

from sbomgraph.commands import check
from sbomgraph.core.logging import setup_logging

app = typer.Typer(
    help='sbomgraph: dependency graphs, licenses and policy checks for multi-module builds.',
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

app.command('check')(check.main)


@app.callback()
def main(
    debug: bool = typer.Option(False, '--debug', help='Enable debug logging'),
):
    """
    sbomgraph CLI.
    """
    level = 'DEBUG' if debug else 'INFO'
    setup_logging(level=level)


if __name__ == '__main__':
    app()

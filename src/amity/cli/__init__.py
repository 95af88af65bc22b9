"""CLI commands for Amity.

Provides command-line interface using Typer:
- amity worker: Run a dispatcher until interrupted
- amity call: Issue one operation over the bridge and print its reply

Usage:
    amity --help
    amity worker --concurrency 64
    amity call add-edge 1 2 --requester 42
    amity call recommend 1 --depth 2 --threshold 2
"""

import typer

from amity.cli.call_cmd import call
from amity.cli.worker_cmd import app as worker_app

# Main CLI application
app = typer.Typer(
    name="amity",
    help="Amity: friendship graph over a request/response bus",
    no_args_is_help=True,
)

app.add_typer(worker_app, name="worker")

# Registered as a plain command so options may follow positional ids
app.command(name="call", help="Issue one operation and print its reply")(call)


@app.callback()
def callback() -> None:
    """Amity: friendship graph over a request/response bus."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

"""Typer application entry point for docaudit CLI."""

import typer

from docaudit.cli.commands import audit as audit_command

app = typer.Typer(no_args_is_help=True, name="docaudit")


@app.callback()
def main() -> None:
    """Audit documentation sites for AI agent discoverability."""


# Register as a direct command (not a sub-typer) to avoid argument parsing
# issues
app.command(name="audit", help="Audit a documentation site")(
    audit_command.audit_command
)


if __name__ == "__main__":
    app()

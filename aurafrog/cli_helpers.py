"""Shared console output helpers for the aurafrog CLI."""

import click
from rich.console import Console

console = Console()


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str, fix_hint: str = "") -> None:
    console.print(f"[red]✗[/red] {message}")
    if fix_hint:
        console.print(f"  [white]Hint: {fix_hint}[/white]")


def format_flag(value: bool) -> str:
    return "[green]on[/green]" if value else "[red]off[/red]"


def project_option(fn):
    """Shared --project-dir option."""
    return click.option(
        "--project-dir",
        type=click.Path(file_okay=False, path_type=str),
        default=None,
        help="Project root (defaults to AF_PROJECT_DIR, CLAUDE_PROJECT_DIR or cwd)",
    )(fn)

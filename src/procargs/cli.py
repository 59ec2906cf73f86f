"""Typer CLI: init, split, quote, args, expand, prepare commands."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from procargs import __version__
from procargs.dialect import Dialect

app = typer.Typer(
    name="procargs",
    help="Split, quote and macro-expand command lines for Unix shells and cmd.exe.",
    no_args_is_help=True,
)
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"procargs v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version.", callback=_version_callback, is_eager=True
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
) -> None:
    """procargs - shell-safe command line handling."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _load(project_dir: Path, dialect_name: str | None) -> tuple[dict, Dialect]:
    from procargs.config import load_config, resolve_dialect, validate_config

    config = load_config(project_dir, {"dialect": dialect_name})
    errors = validate_config(config)
    if errors:
        for e in errors:
            console.print(f"[red]Config error: {escape(e)}[/red]")
        raise typer.Exit(1)
    return config, resolve_dialect(config["dialect"])


def _parse_assignments(items: list[str], what: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or not name:
            console.print(f"[red]Invalid {what} '{escape(item)}'[/red] (expected NAME=VALUE)")
            raise typer.Exit(1)
        values[name] = value
    return values


def _environment(use_env: bool, variables: list[str], dialect: Dialect):
    from procargs.environment import Environment

    if not use_env and not variables:
        return None
    env = Environment.for_dialect(os.environ if use_env else {}, dialect)
    for name, value in _parse_assignments(variables, "variable").items():
        env.set(name, value)
    return env


@app.command()
def init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
    dialect: str = typer.Option("auto", "--dialect", "-d", help="unix, windows or auto"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Create .procargs/config.json in the project directory."""
    from procargs.config import DEFAULT_CONFIG, CONFIG_DIR, CONFIG_FILE, save_config, validate_config
    from procargs.utils import deep_merge, load_json

    config_path = project_dir / CONFIG_DIR / CONFIG_FILE
    if config_path.exists() and not force:
        config = deep_merge(DEFAULT_CONFIG, load_json(config_path))
        console.print("  [yellow]Merged with existing config[/yellow]")
    else:
        config = DEFAULT_CONFIG.copy()
        console.print("  [green]Created default config[/green]")
    config["dialect"] = dialect

    errors = validate_config(config)
    if errors:
        for e in errors:
            console.print(f"  [red]Config error: {escape(e)}[/red]")
        raise typer.Exit(1)

    save_config(config, project_dir)
    console.print(Panel(f"Config: [cyan]{escape(str(config_path))}[/cyan]", title="procargs", style="green"))


@app.command()
def split(
    text: str = typer.Argument(..., help="Command line to split"),
    dialect: str = typer.Option(None, "--dialect", "-d", help="unix, windows or auto"),
    abort_on_meta: bool = typer.Option(
        False, "--abort-on-meta", help="Fail on shell syntax that is not plain words"
    ),
    use_env: bool = typer.Option(False, "--env", help="Expand variables from the process environment"),
    variables: list[str] = typer.Option([], "--var", "-e", help="Extra variable NAME=VALUE"),
    pwd: str = typer.Option(None, "--pwd", help="Working directory for $PWD / %CD%"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Split a command line into literal arguments."""
    from procargs.args import split_args

    _, dialect_value = _load(project_dir, dialect)
    env = _environment(use_env, variables, dialect_value)
    result = split_args(text, dialect_value, abort_on_meta, env, pwd)
    if not result.ok:
        console.print(f"[red]Split failed:[/red] {result.error.value}")
        raise typer.Exit(1)

    table = Table(title=f"Arguments ({dialect_value.value})")
    table.add_column("#", justify="right", width=4)
    table.add_column("Value")
    for i, arg in enumerate(result.args):
        table.add_row(str(i), escape(repr(arg)))
    console.print(table)


@app.command()
def quote(
    words: list[str] = typer.Argument(..., help="Literal words to quote"),
    dialect: str = typer.Option(None, "--dialect", "-d", help="unix, windows or auto"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Quote literal words into one command line."""
    from procargs.args import join_args

    _, dialect_value = _load(project_dir, dialect)
    typer.echo(join_args(words, dialect_value))


@app.command("args")
def list_args(
    text: str = typer.Argument(..., help="Command line to walk"),
    dialect: str = typer.Option(None, "--dialect", "-d", help="unix, windows or auto"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Walk the arguments of a command line without expanding anything."""
    from procargs.iterator import ArgIterator

    _, dialect_value = _load(project_dir, dialect)
    table = Table(title="Arguments", show_lines=False)
    table.add_column("#", justify="right", width=4)
    table.add_column("Simple", width=6)
    table.add_column("Value")
    for i, (value, simple) in enumerate(ArgIterator(text, dialect_value)):
        table.add_row(
            str(i),
            "[green]yes[/green]" if simple else "[yellow]no[/yellow]",
            escape(repr(value)) if simple else "[dim]<needs expansion>[/dim]",
        )
    console.print(table)


@app.command()
def expand(
    text: str = typer.Argument(..., help="Command line containing macros"),
    dialect: str = typer.Option(None, "--dialect", "-d", help="unix, windows or auto"),
    macros: list[str] = typer.Option([], "--macro", "-m", help="Macro NAME=VALUE"),
    macros_file: Path = typer.Option(None, "--macros-file", help="YAML file with macro values"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Substitute macros into a command line with correct quoting."""
    from procargs.macros import MacroExpander, expand_macros, load_macro_file

    config, dialect_value = _load(project_dir, dialect)
    values = dict(config.get("macros", {}))
    if macros_file is not None:
        values.update(load_macro_file(macros_file))
    values.update(_parse_assignments(macros, "macro"))

    expander = MacroExpander(values, config["macro_pattern"])
    result = expand_macros(text, expander, dialect_value)
    if not result.ok:
        console.print(f"[red]Unsafe to expand:[/red] {escape(result.reason)}")
        raise typer.Exit(1)
    typer.echo(result.text)


@app.command()
def prepare(
    executable: str = typer.Argument(..., help="Program to run"),
    arguments: str = typer.Argument("", help="Argument string in shell syntax"),
    dialect: str = typer.Option(None, "--dialect", "-d", help="unix, windows or auto"),
    use_env: bool = typer.Option(False, "--env", help="Expand variables from the process environment"),
    variables: list[str] = typer.Option([], "--var", "-e", help="Extra variable NAME=VALUE"),
    pwd: str = typer.Option(None, "--pwd", help="Working directory for $PWD / %CD%"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Show how a command would be launched, falling back to a shell if needed."""
    from procargs.command import prepare_command
    from procargs.config import shell_for

    config, dialect_value = _load(project_dir, dialect)
    env = _environment(use_env, variables, dialect_value)
    prepared = prepare_command(
        executable, arguments, dialect_value, env, pwd, shell=shell_for(config, dialect_value)
    )
    if not prepared.ok:
        console.print(f"[red]Cannot prepare command:[/red] {prepared.error.value}")
        raise typer.Exit(1)

    via = "[yellow]shell[/yellow]" if prepared.via_shell else "[green]direct[/green]"
    console.print(f"  Mode: {via}")
    console.print(f"  Program: [cyan]{escape(prepared.executable)}[/cyan]")
    if prepared.args.is_windows:
        console.print(f"  Command line: {prepared.args.to_windows_args()}", markup=False)
    else:
        for i, arg in enumerate(prepared.args.to_unix_args()):
            console.print(f"  argv[{i + 1}]: {arg!r}", markup=False)

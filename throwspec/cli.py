"""Command-line interface for throws-clause analysis.

This module handles argument parsing only. Business logic lives in queries.py,
output formatting lives in formatters.py.
"""

import logging
import shutil
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from throwspec import formatters, queries, timing
from throwspec.config import CONFIG_DIR, CONFIG_FILE, ThrowspecConfig, load_config
from throwspec.enums import OutputFormat
from throwspec.loader import load_program
from throwspec.models import ProgramModel
from throwspec.stubs import BUILTIN_STUB_DIR, load_stubs, validate_stub_file

HELP_TEXT = """Throws-clause specificity analysis for resolved Java program models.

Finds methods declaring `throws Exception` or `throws Throwable` whose bodies
only throw a few specific checked exceptions, and proposes the precise clause.

**Quick start:**
```
throwspec check               # Report broad throws clauses
throwspec fix --dry-run       # Show the rewrites without touching sources
throwspec fix                 # Apply the rewrites to the Java sources
throwspec explain <method>    # Show why a method was or was not flagged
```

**Other commands:**
```
throwspec exceptions          # Known throwable hierarchy
throwspec stubs list          # Library signatures in use
throwspec init                # Create .throwspec/ with a config template
```

**All reporting commands support:** `-f json` for structured output
"""

app = typer.Typer(
    name="throwspec",
    help=HELP_TEXT,
    no_args_is_help=True,
    rich_markup_mode="markdown",
)

console = Console()


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log resolution details to stderr")
    ] = False,
) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.WARNING,
        format="[throwspec] %(levelname)s %(message)s",
    )


def _project_dir(path: Path) -> Path:
    return path if path.is_dir() else path.parent


def build_model(path: Path, config: ThrowspecConfig) -> ProgramModel:
    """Load and link the program models at path."""
    if not path.exists():
        console.print(f"[red]No such file or directory: {path}[/red]")
        raise typer.Exit(1)

    stubs = load_stubs(_project_dir(path))
    with console.status(f"[bold blue]Loading[/bold blue] {path.name}..."):
        return load_program(path, config=config, stubs=stubs)


@app.command()
def check(
    directory: Annotated[
        Path, typer.Option("--directory", "-d", help="Model file or directory to analyze")
    ] = Path("."),
    output_format: Annotated[str, typer.Option("--format", "-f", help="Output format")] = "text",
    show_skipped: Annotated[
        bool, typer.Option("--show-skipped", help="List methods left alone and why")
    ] = False,
    fail_on_findings: Annotated[
        bool, typer.Option("--fail-on-findings", help="Exit with status 1 when anything is found")
    ] = False,
    show_timing: Annotated[bool, typer.Option("--timing", help="Print a timing report")] = False,
) -> None:
    """Report methods whose broad throws clause can be narrowed."""
    if show_timing:
        timing.enable()

    directory = directory.resolve()
    config = load_config(_project_dir(directory))
    model = build_model(directory, config)
    result = queries.check_program(model, config)
    formatters.check(
        result, OutputFormat(output_format), _project_dir(directory), console, show_skipped
    )

    if show_timing:
        console.print(timing.format_report())
    if fail_on_findings and result.findings:
        raise typer.Exit(1)


@app.command()
def fix(
    directory: Annotated[
        Path, typer.Option("--directory", "-d", help="Model file or directory to fix")
    ] = Path("."),
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show the edits without writing files")
    ] = False,
    output_format: Annotated[str, typer.Option("--format", "-f", help="Output format")] = "text",
) -> None:
    """Rewrite broad throws clauses in the Java sources the models point at."""
    directory = directory.resolve()
    config = load_config(_project_dir(directory))
    model = build_model(directory, config)
    result = queries.check_program(model, config)
    fix_result = queries.apply_fixes(result, dry_run=dry_run)
    formatters.fixes(fix_result, OutputFormat(output_format), _project_dir(directory), console)


@app.command()
def explain(
    method_name: Annotated[str, typer.Argument(help="Method name, qualified name or signature")],
    directory: Annotated[
        Path, typer.Option("--directory", "-d", help="Model file or directory to analyze")
    ] = Path("."),
    output_format: Annotated[str, typer.Option("--format", "-f", help="Output format")] = "text",
) -> None:
    """Show each step of the check for one method."""
    directory = directory.resolve()
    config = load_config(_project_dir(directory))
    model = build_model(directory, config)
    result = queries.explain_method(model, method_name)
    formatters.explain(result, OutputFormat(output_format), _project_dir(directory), console)


@app.command()
def exceptions(
    directory: Annotated[
        Path, typer.Option("--directory", "-d", help="Model file or directory to analyze")
    ] = Path("."),
    output_format: Annotated[str, typer.Option("--format", "-f", help="Output format")] = "text",
) -> None:
    """List the throwable hierarchy known to the check."""
    directory = directory.resolve()
    config = load_config(_project_dir(directory))
    model = build_model(directory, config)
    result = queries.find_exceptions(model)
    formatters.exceptions(result, OutputFormat(output_format), console)


@app.command()
def init(
    directory: Annotated[
        Path, typer.Option("--directory", "-d", help="Directory to initialize")
    ] = Path("."),
) -> None:
    """Initialize .throwspec/ directory with a config template."""
    directory = directory.resolve()
    config_dir = directory / CONFIG_DIR

    if config_dir.exists():
        console.print(f"[yellow]{CONFIG_DIR}/ directory already exists at {config_dir}[/yellow]")
        console.print("[dim]Delete it first if you want to reinitialize.[/dim]")
        raise typer.Exit(1)

    (config_dir / "stubs").mkdir(parents=True)

    config_content = f"""# throwspec configuration for {directory.name}

# Methods (qualified names) or model files to leave alone, as fnmatch patterns
exclude: []

# Source paths treated as test code
test_patterns:
  - "*/src/test/*"
  - "*/src/testFixtures/*"
  - "*/src/integrationTest/*"
  - "*Test.java"
  - "*Tests.java"

# Imported packages that mark a unit as test code
test_imports:
  - org.junit
  - org.testng
"""
    (config_dir / CONFIG_FILE).write_text(config_content)
    console.print(f"  [green]Created[/green] {CONFIG_DIR}/{CONFIG_FILE}")
    console.print(f"  [green]Created[/green] {CONFIG_DIR}/stubs/")
    console.print()
    console.print("[bold green]Initialization complete![/bold green]")


@app.command()
def stubs(
    action: Annotated[str, typer.Argument(help="Action: list, init, or validate")],
    library: Annotated[str | None, typer.Argument(help="Stub file name for init action")] = None,
    directory: Annotated[Path, typer.Option("--directory", "-d", help="Project directory")] = Path(
        "."
    ),
) -> None:
    """Manage checked-exception stubs for library methods."""
    directory = directory.resolve()
    user_dir = directory / CONFIG_DIR / "stubs"

    if action == "list":
        stub_library = load_stubs(directory)
        console.print("\n[bold]Loaded library stubs:[/bold]\n")
        for owner, methods in sorted(stub_library.stubs.items()):
            declaring = sum(1 for excs in methods.values() if excs)
            console.print(
                f"  [cyan]{owner}[/cyan]: {len(methods)} methods, {declaring} declaring exceptions"
            )
        console.print()

    elif action == "init":
        if not library:
            console.print("[red]Stub name required for init action[/red]")
            console.print("[dim]Example: throwspec stubs init java.io[/dim]")
            raise typer.Exit(1)

        source_file = BUILTIN_STUB_DIR / f"{library}.yaml"
        if not source_file.exists():
            console.print(f"[red]No built-in stub for '{library}'[/red]")
            console.print("[dim]Available stubs:[/dim]")
            for yaml_file in sorted(BUILTIN_STUB_DIR.glob("*.yaml")):
                console.print(f"  - {yaml_file.stem}")
            raise typer.Exit(1)

        user_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy(source_file, user_dir / source_file.name)
        console.print(f"[green]Copied {source_file.name} to {CONFIG_DIR}/stubs/[/green]")

    elif action == "validate":
        errors_found = False
        for stub_dir in [BUILTIN_STUB_DIR, user_dir]:
            if not stub_dir.exists():
                continue
            for yaml_file in sorted(stub_dir.glob("*.yaml")):
                errors = validate_stub_file(yaml_file)
                if errors:
                    errors_found = True
                    console.print(f"[red]Errors in {yaml_file.name}:[/red]")
                    for error in errors:
                        console.print(f"  - {error}")
                else:
                    console.print(f"[green]v[/green] {yaml_file.name}")

        if errors_found:
            raise typer.Exit(1)
        console.print("\n[green]All stub files are valid[/green]")

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Valid actions: list, init, validate")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()

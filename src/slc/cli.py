"""slc CLI

Usage:
    slc compile statusline.yaml            # print the script
    slc compile statusline.yaml -o out.sh  # write an executable script
    slc stats statusline.yaml              # size and validation report
    slc warm                               # precompute common templates
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

import slc
from slc.compiler.compiler import Compiler
from slc.config import StatuslineConfig, resolve_settings
from slc.exceptions import SlcError

from .utils import console, handle_error, setup_logging

app = typer.Typer(help="Compile status line configs into bash scripts.")

SEVERITY_COLORS = {"low": "green", "medium": "yellow", "high": "red"}


def _load(config_path: Path) -> StatuslineConfig:
    if not config_path.exists():
        raise typer.BadParameter(f"{config_path} not found", param_hint="CONFIG")
    return StatuslineConfig.load(config_path)


@app.command("compile")
def compile_command(
    config_path: Path = typer.Argument(..., help="Status line YAML config."),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write the script here instead of stdout."
    ),
    no_optimize: bool = typer.Option(
        False, "--no-optimize", help="Ship the unoptimized script."
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
) -> None:
    """Compile a config into a status line script."""
    setup_logging(verbose)
    try:
        config = _load(config_path)
        compiler = Compiler(resolve_settings(), optimize=not no_optimize)
        text = compiler.generate(config)
    except SlcError as e:
        handle_error(e)

    if output is None:
        typer.echo(text, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text)
    output.chmod(0o755)
    typer.secho(f"Wrote {output} ({len(text.encode())} bytes)", fg=typer.colors.GREEN, err=True)


@app.command("stats")
def stats_command(
    config_path: Path = typer.Argument(..., help="Status line YAML config."),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
) -> None:
    """Show optimization and validation details for a config."""
    setup_logging(verbose)
    try:
        result = Compiler(resolve_settings()).compile(_load(config_path))
    except SlcError as e:
        handle_error(e)

    table = Table(title=f"slc {slc.__version__}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Raw size", f"{result.stats['original_size']} bytes")
    table.add_row("Optimized size", f"{result.stats['optimized_size']} bytes")
    table.add_row("Reduction", f"{result.stats['reduction_percent']}%")
    table.add_row("Compression ratio", str(result.stats["compression_ratio"]))
    color = SEVERITY_COLORS[result.report.severity]
    table.add_row(
        "Validation",
        f"[{color}]{'valid' if result.report.is_valid else 'rejected'} "
        f"({result.report.severity})[/{color}]",
    )
    table.add_row("Shipped", "optimized" if result.report.is_valid else "raw")
    table.add_row("Generation time", f"{result.duration * 1000:.1f}ms")
    console.print(table)

    for finding in result.report.findings:
        color = SEVERITY_COLORS[finding.severity]
        console.print(
            f"[{color}]{finding.severity}[/{color}] {finding.category}: {finding.message}"
        )


@app.command("warm")
def warm_command(
    verbose: bool = typer.Option(False, "-v", "--verbose"),
) -> None:
    """Precompute the common template table into the cache directory."""
    setup_logging(verbose)
    try:
        compiler = Compiler(resolve_settings())
        texts = compiler.precompute_templates()
    except SlcError as e:
        handle_error(e)

    table = Table()
    table.add_column("Template", style="cyan")
    table.add_column("Size")
    for name, text in texts.items():
        table.add_row(name, f"{len(text.encode())} bytes")
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

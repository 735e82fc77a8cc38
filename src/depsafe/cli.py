"""depsafe CLI: Typer application with scan, validate, and init commands."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.text import Text

from depsafe import __version__

app = typer.Typer(
    name="depsafe",
    help="Apply suppression rules to dependency vulnerability scan results.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)


def _error(label: str, exc: Exception) -> None:
    console.print(Text.assemble((f"{label}: ", "bold red"), str(exc)))


# ── scan ──────────────────────────────────────────────────────────────────────


@app.command()
def scan(
    inventory: Path = typer.Argument(..., help="YAML/JSON dependency inventory"),
    suppression: Optional[List[str]] = typer.Option(
        None, "--suppression", "-s", help="Suppression XML file (repeatable, applied in order)"
    ),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .depsafe.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write report to file"),
    no_base: bool = typer.Option(False, "--no-base", help="Skip the packaged base suppression rules"),
    fail_on_unused: bool = typer.Option(False, "--fail-on-unused", help="Exit 1 if a rule had zero matches"),
    show_suppressed: bool = typer.Option(False, "--show-suppressed", help="List suppressed entries"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Debug logging"),
) -> None:
    """Apply suppression rules to INVENTORY and report what remains."""
    from depsafe.config.loader import ConfigError, load_config
    from depsafe.config.schema import OUTPUT_FORMATS
    from depsafe.dependency.loader import DependencyLoadError, load_dependencies
    from depsafe.log import configure_logging
    from depsafe.output import json_report, terminal
    from depsafe.scanner.engine import ScanError, build_rule_set, scan as run_scan
    from depsafe.suppression.parser import SuppressionParseError

    # --- Load config ---
    try:
        cfg = load_config(Path.cwd(), config)
    except ConfigError as exc:
        _error("Config error", exc)
        raise typer.Exit(code=2) from exc

    # --- CLI overrides ---
    if format:
        if format not in OUTPUT_FORMATS:
            console.print(f"[bold red]Invalid format:[/bold red] {format}")
            raise typer.Exit(code=2)
        cfg.output.format = format  # type: ignore[assignment]
    if no_base:
        cfg.suppression.include_base = False
    if fail_on_unused:
        cfg.suppression.fail_on_unused = True
    if show_suppressed:
        cfg.output.show_suppressed = True
    if debug:
        cfg.logging.level = "debug"
    elif verbose:
        cfg.logging.level = "info"

    configure_logging(cfg.logging.level, console=console)

    # --- Build rules ---
    try:
        rule_set = build_rule_set(cfg, extra_files=suppression or [])
    except SuppressionParseError as exc:
        _error("Suppression file error", exc)
        raise typer.Exit(code=2) from exc

    # --- Load dependencies ---
    try:
        dependencies = load_dependencies(inventory)
    except DependencyLoadError as exc:
        _error("Inventory error", exc)
        raise typer.Exit(code=2) from exc

    if verbose or debug:
        console.print(f"[dim]Rules loaded: {len(rule_set)}[/dim]")
        console.print(f"[dim]Dependencies: {len(dependencies)}[/dim]")

    # --- Run ---
    try:
        result = run_scan(dependencies, rule_set, fail_on_unused=cfg.suppression.fail_on_unused)
    except ScanError as exc:
        _error("Scanner error", exc)
        raise typer.Exit(code=2) from exc

    # --- Output ---
    report_text: Optional[str] = None

    if cfg.output.format == "terminal":
        terminal.render(
            result,
            show_summary=cfg.output.show_summary,
            show_suppressed=cfg.output.show_suppressed,
            console=console,
        )
    elif cfg.output.format == "json":
        report_text = json_report.render(result)
        print(report_text)

    if output:
        Path(output).write_text(report_text or json_report.render(result), encoding="utf-8")
        if verbose:
            console.print(f"[dim]Report written to {output}[/dim]")

    # --- Exit code ---
    if result.unused_rules and cfg.suppression.fail_on_unused:
        console.print(
            f"[bold red]There are {len(result.unused_rules)} unused suppression rule(s): "
            "check logs.[/bold red]"
        )
        raise typer.Exit(code=1)

    raise typer.Exit(code=0)


# ── validate ──────────────────────────────────────────────────────────────────


@app.command()
def validate(
    files: List[Path] = typer.Argument(..., help="Suppression XML files to check"),
) -> None:
    """Parse suppression files and explain every rule they contain."""
    from depsafe.suppression.parser import SuppressionParseError, load_suppression_file

    for path in files:
        try:
            rules = load_suppression_file(path)
        except SuppressionParseError as exc:
            _error("Invalid", exc)
            raise typer.Exit(code=2) from exc

        console.print(f"[green]✓[/green] {path}: {len(rules)} rule(s)")
        for rule in rules:
            flags = []
            if rule.base:
                flags.append("base")
            if rule.is_expired():
                flags.append("expired")
            suffix = f" ({', '.join(flags)})" if flags else ""
            console.print(Text(f"  {rule}{suffix}"))


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init() -> None:
    """Generate a starter .depsafe.toml and suppressions.xml in the current directory."""
    from depsafe.config.defaults import DEFAULT_SUPPRESSIONS, DEFAULT_TOML
    from depsafe.config.loader import CONFIG_FILE_NAME

    base_dir = Path.cwd()
    config_path = base_dir / CONFIG_FILE_NAME
    suppression_path = base_dir / "suppressions.xml"

    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILE_NAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")
    if not suppression_path.exists():
        suppression_path.write_text(DEFAULT_SUPPRESSIONS, encoding="utf-8")
        console.print(f"[green]✓[/green] Created {suppression_path}")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"depsafe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """depsafe: suppress known false positives from dependency scans."""

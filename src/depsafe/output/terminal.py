"""Rich terminal reporter: remaining vulnerabilities, suppressions, rule hygiene."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from depsafe.scanner.engine import ScanResult

_SEVERITY_STYLE = {
    "critical": "bold white on red",
    "high": "bold white on dark_orange",
    "medium": "bold black on yellow",
    "low": "bold black on bright_cyan",
    "unscored": "dim",
}


def _severity(score: Optional[float]) -> str:
    """Map a CVSS base score onto the usual qualitative rating."""
    if score is None:
        return "unscored"
    if score >= 9.0:
        return "critical"
    if score >= 7.0:
        return "high"
    if score >= 4.0:
        return "medium"
    return "low"


def _severity_pill(score: Optional[float]) -> Text:
    label = _severity(score)
    shown = f" {score:.1f} " if score is not None else " - "
    return Text(f" {label.upper()}{shown}", style=_SEVERITY_STYLE[label])


def render(
    result: ScanResult,
    *,
    show_summary: bool = True,
    show_suppressed: bool = False,
    console: Optional[Console] = None,
) -> None:
    """Print suppression results to the terminal using Rich."""
    console = console or Console(stderr=True)

    if not result.vulnerable_dependencies:
        console.print()
        console.print("[bold green]✅ No unsuppressed vulnerabilities remain.[/bold green]")
    else:
        console.print()
        table = Table(
            title="depsafe: remaining vulnerabilities",
            show_lines=True,
            title_style="bold",
            border_style="dim",
        )
        table.add_column("Severity", justify="center", width=16)
        table.add_column("Vulnerability", style="cyan", min_width=16)
        table.add_column("Dependency", style="magenta")
        table.add_column("CWE", style="green")

        for dep in result.vulnerable_dependencies:
            for vuln in dep.sorted_vulnerabilities():
                table.add_row(
                    _severity_pill(vuln.highest_score),
                    Text(vuln.name),
                    Text(dep.file_path),
                    Text(", ".join(vuln.cwes) or "-"),
                )
        console.print(table)

    if show_suppressed:
        _print_suppressed(console, result)

    if result.expired_rules:
        console.print()
        console.print(f"[yellow]⚠  {len(result.expired_rules)} expired suppression rule(s) were skipped:[/yellow]")
        for rule in result.expired_rules:
            console.print(Text(f"  {rule}", style="dim"))

    if result.unused_rules:
        console.print()
        console.print(f"[yellow]⚠  {len(result.unused_rules)} suppression rule(s) had zero matches:[/yellow]")
        for rule in result.unused_rules:
            console.print(Text(f"  {rule}", style="dim"))

    if show_summary:
        _print_summary(console, result)


def _print_suppressed(console: Console, result: ScanResult) -> None:
    rows = [
        (dep.file_path, v.name, v.notes or "")
        for dep in result.dependencies
        for v in sorted(dep.suppressed_vulnerabilities, key=lambda v: v.name)
    ] + [
        (dep.file_path, i.value, i.notes or "")
        for dep in result.dependencies
        for i in sorted(dep.suppressed_identifiers, key=lambda i: i.value)
    ]
    if not rows:
        return
    console.print()
    table = Table(title="Suppressed", title_style="bold", border_style="dim")
    table.add_column("Dependency", style="magenta")
    table.add_column("Suppressed", style="cyan")
    table.add_column("Notes")
    for row in rows:
        table.add_row(*(Text(cell) for cell in row))
    console.print(table)


def _print_summary(console: Console, result: ScanResult) -> None:
    console.print()
    console.print(f"[dim]Dependencies:[/dim]    {result.stats.dependencies}")
    console.print(f"[dim]Vulnerabilities:[/dim] {result.total_vulnerabilities}")
    console.print(f"[dim]Suppressed:[/dim]      {result.stats.vulnerabilities_suppressed} vulnerabilities, "
                  f"{result.stats.identifiers_suppressed} identifiers")
    console.print(f"[dim]Rules loaded:[/dim]    {result.rule_count}")
    console.print(f"[dim]Duration:[/dim]        {result.scan_duration_ms:.0f}ms")

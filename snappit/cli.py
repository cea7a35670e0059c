"""CLI entry point for snappit."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from playwright.async_api import Error as PlaywrightError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from snappit.compare.comparator import compare
from snappit.errors import ScreenshotError, SnappitError
from snappit.models.comparison import ComparisonResult, OutcomeKind
from snappit.models.config import SnappitConfig, SnapTarget
from snappit.models.raster import Raster
from snappit.session import Snappit

console = Console()
logger = logging.getLogger(__name__)

_STYLES = {
    OutcomeKind.MATCH: "green",
    OutcomeKind.NO_BASELINE: "yellow",
    OutcomeKind.SIZE_MISMATCH: "red",
    OutcomeKind.MISMATCH: "red",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(config: str) -> SnappitConfig:
    try:
        return SnappitConfig.load(config)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        console.print("Run 'snappit init' to create a default config.")
        sys.exit(1)


async def run_targets(cfg: SnappitConfig) -> list[tuple[SnapTarget, str, ComparisonResult | str]]:
    """Snap every configured target at every configured resolution.

    Returns ``(target, size, outcome)`` rows; the outcome is an error
    message when the capture itself failed.
    """
    rows: list[tuple[SnapTarget, str, ComparisonResult | str]] = []
    async with Snappit(cfg) as session:
        for size in cfg.sizes:
            await session.set_resolution(size)
            for target in cfg.targets:
                try:
                    if target.url:
                        await session.goto(target.url)
                    result = await session.snap(
                        target.name, target.selector,
                        content=target.content, blackout=target.blackout,
                    )
                    rows.append((target, str(size), result))
                except ScreenshotError as e:
                    rows.append((target, str(size), e.result))
                except (SnappitError, PlaywrightError) as e:
                    logger.error("%s @ %s: %s", target.name, size, e)
                    rows.append((target, str(size), str(e)))
    return rows


def _describe(outcome: ComparisonResult | str) -> tuple[str, str]:
    if isinstance(outcome, str):
        return "[red]error[/red]", outcome
    style = _STYLES[outcome.kind]
    return f"[{style}]{outcome.kind.value}[/{style}]", outcome.message


def _is_failure(cfg: SnappitConfig, outcome: ComparisonResult | str) -> bool:
    if isinstance(outcome, str):
        return True
    return cfg.action_for(outcome.kind) == "raise"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression screenshots of page elements."""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default="snappit.json", help="Config file path")
def run(config: str) -> None:
    """Snap every configured target and compare against baselines."""
    cfg = _load_config(config)
    if not cfg.targets:
        console.print("[yellow]No targets configured[/yellow]")
        return

    rows = asyncio.run(run_targets(cfg))

    table = Table(title="Snapshot Results")
    table.add_column("Name", style="bold")
    table.add_column("Size")
    table.add_column("Outcome")
    table.add_column("Details")
    failures = 0
    for target, size, outcome in rows:
        label, details = _describe(outcome)
        table.add_row(target.name, size, label, details)
        if _is_failure(cfg, outcome):
            failures += 1
    console.print(table)

    if failures:
        console.print(f"[red]{failures} of {len(rows)} snapshots failed[/red]")
        sys.exit(1)
    console.print(f"[green]All {len(rows)} snapshots passed[/green]")


@cli.command("compare")
@click.argument("baseline", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("current", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--threshold", "-t", default=0.04, type=click.FloatRange(0, 1), help="Allowed diff ratio")
def compare_cmd(baseline: Path, current: Path, threshold: float) -> None:
    """Compare two PNG files without a browser."""
    base = Raster.load(baseline) if baseline.exists() else None
    result = compare(Raster.load(current), base, threshold)
    label, details = _describe(result)
    console.print(f"{label}: {details}")
    if not result.passed:
        sys.exit(1)


@cli.command()
@click.option("--base-url", "-u", prompt="Base URL", help="Site the targets live on")
def init(base_url: str) -> None:
    """Create a default configuration file."""
    config_path = Path("snappit.json")
    if config_path.exists():
        if not click.confirm("snappit.json already exists. Overwrite?"):
            return

    cfg = SnappitConfig(
        base_url=base_url,
        targets=[SnapTarget(name="{browserName}/{browserSize}/home", url="/", selector="body")],
    )
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nAdd targets to this file and run:")
    console.print("  [blue]snappit run[/blue]")


if __name__ == "__main__":
    cli()

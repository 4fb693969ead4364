# pricematch/cli/runner.py

"""Headless CLI runner around the async comparison orchestrator."""

import json
import logging
import sys

from rich.console import Console
from rich.table import Table

from pricematch.config.settings import Settings
from pricematch.errors import AmbiguousCategoryMismatch, NoMatchFound
from pricematch.models.comparison import AggregatedResult
from pricematch.services.comparison_orchestrator import ComparisonOrchestrator

logger = logging.getLogger("pricematch.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def resolve_providers(
    provider_csv: str | None,
) -> list[dict[str, str]]:
    """Map a comma-separated list of provider IDs to their config dicts.

    Returns all providers when *provider_csv* is ``None``.
    Raises ``SystemExit`` on unknown IDs.
    """
    available = {p["id"]: p for p in Settings.AVAILABLE_PROVIDERS}
    if provider_csv is None:
        return Settings.AVAILABLE_PROVIDERS

    requested = [
        p.strip() for p in provider_csv.split(",") if p.strip()
    ]
    unknown = [r for r in requested if r not in available]
    if unknown or not requested:
        valid = ", ".join(sorted(available))
        _err.print(
            f"[red]Unknown provider(s): {', '.join(unknown) or '(none)'}[/red]"
        )
        _err.print(f"[dim]Available: {valid}[/dim]")
        raise SystemExit(1)

    return [available[r] for r in requested]


def _print_table(result: AggregatedResult) -> None:
    """Render a Rich table of ranked store prices to stdout."""
    table = Table(
        title=f"Prices for {result.product_name}",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Store", style="magenta")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Stock", justify="center")
    table.add_column("Title", max_width=50)
    table.add_column("URL", overflow="fold", style="dim")

    for idx, sp in enumerate(result.store_prices, 1):
        marker = " ★" if idx == 1 else ""
        if sp.in_stock is None:
            stock = "?"
        else:
            stock = "yes" if sp.in_stock else "no"
        table.add_row(
            str(idx),
            f"{sp.store_name}{marker}",
            f"{sp.currency} {sp.price:,.2f}",
            stock,
            sp.title[:50],
            sp.url,
        )

    Console().print(table)


async def cli_compare(
    description: str,
    expected_name: str | None,
    category_hint: str | None,
    provider_csv: str | None,
    output_format: str,
    barcode: str | None = None,
) -> int:
    """Run one comparison and return an exit code (0=ok, 1=fail)."""
    if not description.strip():
        _err.print("[red]A product description is required.[/red]")
        return 1

    providers = resolve_providers(provider_csv)
    orchestrator = ComparisonOrchestrator(providers=providers)

    labels = ", ".join(p["label"] for p in providers)
    _err.print(
        f"[bold]Comparing:[/bold] {expected_name or description}  "
        f"[dim]providers={labels}[/dim]"
    )

    try:
        result = await orchestrator.compare_product(
            description, expected_name, category_hint, barcode
        )
    except AmbiguousCategoryMismatch as exc:
        _err.print(f"[yellow]Category mismatch: {exc.message}[/yellow]")
        return 1
    except NoMatchFound as exc:
        _err.print(
            "[yellow]No matching offers found.[/yellow] "
            f"[dim]Tried: {', '.join(exc.attempted_variants) or '-'}[/dim]"
        )
        return 1
    finally:
        orchestrator.close()

    _err.print(
        f"[green]✓ {len(result.store_prices)} prices from "
        f"{result.total_stores} stores, best "
        f"{result.best_price:,.2f} at {result.best_store_name}, "
        f"save up to {result.max_savings:,.2f}[/green]"
    )

    if output_format == "table":
        _print_table(result)
    else:
        json.dump(
            result.to_dict(),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0


def run_purge_cache() -> int:
    """Delete expired cache entries from the configured cache."""
    from pricematch.storage.result_cache import build_cache

    removed = build_cache().purge_expired()
    _err.print(f"[green]✓ Purged {removed} expired cache entries[/green]")
    return 0


async def run_health_check() -> int:
    """Run a connectivity health check on all providers."""
    from pricematch.services.health_checker import HealthChecker

    _err.print("[bold]Running provider health check...[/bold]")
    checker = HealthChecker()
    results = await checker.check_all()

    table = Table(
        title="Provider Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Provider", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]OK[/green]"
        elif r.status == "slow":
            status = "[yellow]SLOW[/yellow]"
        elif r.status == "disabled":
            status = "[dim]DISABLED[/dim]"
        else:
            status = "[red]DOWN[/red]"
            any_down = True

        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "-"
        table.add_row(r.provider_id, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0

#!/usr/bin/env python3
"""
CLI for the meal parser.

Usage:
    # Parse and scale a meal against the bundled catalog
    meal-parser "I had 2 slices of bread and a cup of coffee for breakfast"

    # Use a custom catalog file and save entries
    meal-parser "200g grilled chicken breast with rice" --catalog foods.json --store log.json

    # Machine-readable output
    meal-parser "an apple" --json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .constants import Settings, load_settings
from .models import MealLog
from .pipeline import MealLogger
from .services.catalog import JsonFoodCatalog, RestFoodCatalog
from .services.entry_store import JsonEntryStore

console = Console()


def _confidence_color(confidence: float) -> str:
    if confidence >= 0.8:
        return "green"
    if confidence >= 0.6:
        return "yellow"
    return "red"


def _build_catalog(settings: Settings, catalog_path: Optional[str]):
    path = catalog_path or settings.catalog_path
    if path:
        return JsonFoodCatalog.from_path(Path(path))
    if settings.catalog_url:
        return RestFoodCatalog(settings.catalog_url, api_key=settings.catalog_key)
    return JsonFoodCatalog.from_path()


def _print_log(log: MealLog) -> None:
    """Pretty-print the items, matches and prompts of a meal log."""
    message = log.message
    header = "[bold]Meal[/bold]"
    if message.meal_context:
        header += f"  [dim]{message.meal_context}[/dim]"
    if message.time_context:
        header += f"  [dim]({message.time_context})[/dim]"
    console.print(header)

    if not log.items:
        console.print("  [yellow]No food found in that description.[/yellow]")

    table = Table(show_header=True, header_style="bold", padding=(0, 1))
    table.add_column("Food", min_width=18)
    table.add_column("Amount", justify="right")
    table.add_column("Grams", justify="right")
    table.add_column("State")
    table.add_column("kcal", justify="right")
    table.add_column("P / C / F (g)", justify="right")
    table.add_column("Match")

    for item, match in zip(log.items, log.matches):
        if match.best_match is None:
            how = "[red]estimated[/red]"
        else:
            c = _confidence_color(match.best_match.confidence)
            how = f"[{c}]{match.best_match.match_type} {match.best_match.confidence:.2f}[/{c}]"
        macros = " / ".join(
            f"{item.nutrient(n) or 0:g}" for n in ("protein", "carbs", "fat")
        )
        table.add_row(
            item.name,
            f"{item.quantity:g} {item.unit}",
            f"{item.grams:g}",
            item.cooking_state,
            str(item.calories),
            macros,
            how,
        )

    if log.items:
        console.print(table)
        console.print(f"  [bold]Total:[/bold] {log.totals.calories} kcal")

    for match in log.matches:
        if match.needs_disambiguation:
            console.print(
                f"  [yellow]?[/yellow] '{match.mention.food_name}' could be: "
                + ", ".join(match.suggestions)
            )

    for prompt in message.clarification_prompts:
        console.print(f"  [yellow]![/yellow] {prompt}")

    if log.stored:
        console.print(f"\n  [dim]Saved {log.stored} entr{'y' if log.stored == 1 else 'ies'}[/dim]")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Meal parser: turn a meal description into scaled nutrition entries",
    )
    parser.add_argument(
        "text", nargs="+",
        help="Meal description, e.g. \"2 slices of bread and a cup of coffee\"",
    )
    parser.add_argument(
        "--catalog", type=str, default=None,
        help="JSON food catalog (default: MEAL_PARSER_CATALOG_PATH, REST catalog, or bundled)",
    )
    parser.add_argument(
        "--store", type=str, default=None,
        help="Append the resulting entries to this JSON file",
    )
    parser.add_argument(
        "--llm", action="store_true",
        help="Add LLM matching to the cascade (needs OPENROUTER_API_KEY)",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Print the full result as JSON",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    load_dotenv()

    try:
        settings = load_settings()
        catalog = _build_catalog(settings, args.catalog)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]{e}[/red]")
        return 1

    store = JsonEntryStore(Path(args.store)) if args.store else None
    meal_logger = MealLogger(catalog, store=store, settings=settings, use_llm=args.llm)

    text = " ".join(args.text)
    try:
        log = asyncio.run(meal_logger.log(text))
    except (OSError, ValueError) as e:
        console.print(f"[red]Could not save entries: {e}[/red]")
        return 1

    if args.json:
        print(json.dumps(log.model_dump(mode="json"), ensure_ascii=False, indent=2))
    else:
        _print_log(log)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Command line helpers for nexuscards."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .app import GameApp
from .config import NexusConfig
from .diagnostics.combat_simulator import CombatSimulator
from .domain.combat import CombatPerks
from .loaders import load_catalog_from_json, validate_catalog_file
from .validators import validate_app

console = Console()


def run_simulator() -> None:
    parser = argparse.ArgumentParser(description="nexuscards combat simulator")
    parser.add_argument("catalog", help="Path to catalog JSON file")
    parser.add_argument("card_id", help="Enemy card identifier to fight")
    parser.add_argument("--fights", type=int, default=1000, help="Number of fights to simulate")
    parser.add_argument("--armor", type=int, default=0, help="Player armor at fight start")
    parser.add_argument("--flat-damage", type=int, default=0, help="Combat perk flat damage")
    args = parser.parse_args()

    app = GameApp(NexusConfig.from_env())
    load_catalog_from_json(app, Path(args.catalog))

    simulator = CombatSimulator(app, rng=app.rng)
    result = asyncio.run(
        simulator.simulate(
            args.card_id,
            fights=args.fights,
            perks=CombatPerks(flat_damage=args.flat_damage),
            starting_armor=args.armor,
        )
    )

    table = Table(title=f"{args.card_id}: {result.fights} fights")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Win rate", f"{result.win_rate:.1%}")
    table.add_row("Defeats", str(result.defeats))
    table.add_row("Stalemates", str(result.stalemates))
    table.add_row("Avg rounds", f"{result.average_rounds:.2f}")
    table.add_row("Avg HP lost", f"{result.average_hp_lost:.2f}")
    console.print(table)

    damage = Table(title="Damage per round")
    damage.add_column("Damage", justify="right")
    damage.add_column("Rounds", justify="right")
    for amount, count in sorted(result.damage_histogram.items()):
        damage.add_row(str(amount), str(count))
    console.print(damage)


def run_validate() -> None:
    parser = argparse.ArgumentParser(description="nexuscards catalog validator")
    parser.add_argument("--catalog", required=True, help="Path to catalog JSON file for validation")
    args = parser.parse_args()

    path = Path(args.catalog)
    errors = validate_catalog_file(path)
    if errors:
        console.print("[bold red]Catalog errors:[/bold red]")
        for err in errors:
            console.print(f"- {err}")
        sys.exit(1)

    app = GameApp(NexusConfig.from_env())
    load_catalog_from_json(app, path)
    issues = validate_app(app)
    if issues:
        console.print("[bold red]Cross-reference errors:[/bold red]")
        for issue in issues:
            console.print(f"- {issue}")
        sys.exit(1)
    console.print("[green]Catalog is valid ✅[/green]")

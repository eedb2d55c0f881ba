"""Diagnostics helpers."""

from .combat_simulator import CombatSimulator, SimulationResult

__all__ = ["CombatSimulator", "SimulationResult"]

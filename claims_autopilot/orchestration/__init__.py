"""Orchestration layer: daily action budget and the per-cycle run orchestrator."""

from .budget import ActionBudgetGate, start_of_utc_day, utc_now

__all__ = [
    "ActionBudgetGate",
    "start_of_utc_day",
    "utc_now"
]

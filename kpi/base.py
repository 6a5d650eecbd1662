"""
kpi/base.py

Formula contract shared by the dialer KPI calculators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseKPIFormula(ABC):
    """
    A pure mapping from one day's parsed report rows to KPI rows.

    Inputs are keyed by report category (``agent_summary``, ``production``,
    ``shift_report`` ...), each holding that category's typed rows. The
    result carries ``daily``, ``skills`` and ``agents`` entries ready for
    persistence. Day-over-day deltas need stored history, so they are left
    to the caller.

    Implementations must be deterministic and perform no I/O.
    """

    @abstractmethod
    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """Return ``{"daily": {...}, "skills": [...], "agents": [...]}`` for *inputs*."""

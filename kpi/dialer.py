"""
kpi/dialer.py

Dialer (outbound call-center) KPI formula implementation.

Expected inputs
---------------
agent_summary : list[AgentSummaryRow]
    Rows of the all-agents AgentSummary report.
agent_summary_campaign : list[AgentSummaryRow]
    Rows of the active-agents AgentSummaryCampaign report. Used only when
    ``agent_summary`` is empty.
production : list[ProductionRow]
    Per-agent, per-skill rows with disposition counts.
subcampaign : list[SubcampaignRow]
    Fallback totals when no agent rows exist.
shift_report : list[ShiftReportRow]
    System-wide call status counts; fills disposition keys the production
    report lacks.
campaign_summary : list[CampaignSummaryRow]
    Campaign-level system totals.

Any other report rows (``calls_per_hour``, ``agent_analysis`` ...) are
consumed by :mod:`kpi.dialer_enrichment`.

Formulas
--------
Connect Rate      = connects / dials * 100
Contact Rate      = contacts / connects * 100
Conversion Rate   = transfers / contacts * 100
Transfers / Hour  = transfers / man_hours
Dials / Hour      = dials / man_hours
Dead Air Ratio    = dead_air / connects * 100
Hung Up Ratio     = hung_up_transfer / connects * 100
Waste Rate        = waste dispositions / connects * 100
Transfer Success  = transfer / (transfer + hung_up_transfer) * 100

Division by zero yields 0 rather than None: a day with no dials has a
connect rate of 0, not an undefined one.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import numpy as np

from app.parsers.values import disposition_key
from kpi.base import BaseKPIFormula
from kpi.dialer_enrichment import build_raw_data

# Agents need at least this many hours to be ranked or counted in the TPH spread.
MIN_HOURS_QUALIFIED = 2.0

WASTE_DISPOSITIONS: tuple[str, ...] = (
    "Not Interested",
    "Dead Air",
    "DNC",
    "Wrong Number",
    "Ans. Machine",
    "Robo",
)

_DISTRIBUTION_QUANTILES = {"p10": 0.1, "p25": 0.25, "p50": 0.5, "p75": 0.75, "p90": 0.9}


class DialerKPIFormula(BaseKPIFormula):
    """
    Deterministic dialer KPI calculations with zero-safe division.

    All arithmetic is self-contained. No I/O, no logging, no side effects.
    Identical inputs always produce identical outputs.
    """

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """
        Compute the daily snapshot, the per-agent and per-skill breakdowns.

        Returns
        -------
        dict
            ``daily``  – DailyKPI column values (deltas left as None),
            ``agents`` – AgentPerformance rows,
            ``skills`` – SkillSummary rows ordered by transfers descending.
        """
        agent_summary = list(inputs.get("agent_summary") or [])
        if not agent_summary:
            agent_summary = list(inputs.get("agent_summary_campaign") or [])
        production = list(inputs.get("production") or [])
        shift_report = list(inputs.get("shift_report") or [])

        agents = merge_agent_rows(agent_summary)
        if agents:
            daily = compute_daily_kpis(agents, production)
            if shift_report:
                daily = merge_shift_dispositions(daily, shift_report)
            agent_rows = compute_agent_performance(agents, production)
        else:
            daily = compute_subcampaign_fallback(inputs.get("subcampaign") or [])
            agent_rows = []

        daily.update(compute_campaign_aggregate(inputs.get("campaign_summary") or []))
        daily["raw_data"] = build_raw_data(inputs, agent_rows)

        return {
            "daily": daily,
            "agents": agent_rows,
            "skills": compute_skill_summary(production),
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def safe_div(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def sum_dispositions(rows: Iterable[Any]) -> dict[str, float]:
    """Sum the disposition columns of production rows under normalised keys."""
    totals: dict[str, float] = {}
    for row in rows:
        for column, value in row.dispositions.items():
            key = disposition_key(column)
            totals[key] = totals.get(key, 0.0) + value
    return totals


def _disposition_ratios(dispositions: Mapping[str, float], connects: float) -> dict[str, float]:
    dead_air = dispositions.get("dead_air", 0.0)
    hung_up = dispositions.get("hung_up_transfer", 0.0)
    transfer = dispositions.get("transfer", 0.0)
    waste = sum(dispositions.get(disposition_key(name), 0.0) for name in WASTE_DISPOSITIONS)
    return {
        "dead_air_ratio": round(safe_div(dead_air, connects) * 100, 2),
        "hung_up_ratio": round(safe_div(hung_up, connects) * 100, 2),
        "waste_rate": round(safe_div(waste, connects) * 100, 1),
        "transfer_success_rate": round(safe_div(transfer, transfer + hung_up) * 100, 1),
    }


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


def merge_agent_rows(rows: Sequence[Any]) -> list[dict[str, Any]]:
    """
    Collapse agent summary rows to one entry per agent name.

    Names are matched case-insensitively; the first spelling seen is kept.
    Additive fields are summed, so totals are unchanged by the merge.
    """
    merged: dict[str, dict[str, Any]] = {}
    additive = (
        "dialed",
        "connects",
        "contacts",
        "hours_worked",
        "transfers",
        "talk_time_min",
        "wait_time_min",
        "wrap_time_min",
        "logged_in_time_min",
    )
    for row in rows:
        key = row.rep.lower()
        entry = merged.get(key)
        if entry is None:
            entry = {"rep": row.rep, "connects_per_hour": row.connects_per_hour}
            entry.update({name: 0.0 for name in additive})
            merged[key] = entry
        for name in additive:
            entry[name] += getattr(row, name)
    return list(merged.values())


def compute_agent_performance(
    agents: Sequence[Mapping[str, Any]],
    production: Sequence[Any],
) -> list[dict[str, Any]]:
    """
    Join merged agent rows to production rows on the lower-cased agent name.

    The first production row of an agent supplies its skill. Agents with at
    least :data:`MIN_HOURS_QUALIFIED` hours receive TPH, conversion and
    dials ranks (1 = best); others keep ``None``.
    """
    production_by_agent: dict[str, list[Any]] = {}
    for row in production:
        production_by_agent.setdefault(row.rep.lower(), []).append(row)

    results: list[dict[str, Any]] = []
    for agent in agents:
        prod_rows = production_by_agent.get(agent["rep"].lower(), [])
        dispositions = sum_dispositions(prod_rows)
        hours = agent["hours_worked"]
        results.append(
            {
                "agent_name": agent["rep"],
                "skill": (prod_rows[0].skill or None) if prod_rows else None,
                "dials": agent["dialed"],
                "connects": agent["connects"],
                "contacts": agent["contacts"],
                "transfers": agent["transfers"],
                "hours_worked": round(hours, 2),
                "talk_time_min": round(agent["talk_time_min"], 2),
                "wait_time_min": round(agent["wait_time_min"], 2),
                "wrap_time_min": round(agent["wrap_time_min"], 2),
                "logged_in_time_min": round(agent["logged_in_time_min"], 2),
                "tph": round(safe_div(agent["transfers"], hours), 2),
                "connects_per_hour": round(agent["connects_per_hour"], 2),
                "connect_rate": round(safe_div(agent["connects"], agent["dialed"]) * 100, 2),
                "conversion_rate": round(safe_div(agent["transfers"], agent["contacts"]) * 100, 2),
                "dead_air_ratio": round(
                    safe_div(dispositions.get("dead_air", 0.0), agent["connects"]) * 100, 2
                ),
                "dispositions": dispositions,
                "tph_rank": None,
                "conversion_rank": None,
                "dials_rank": None,
            }
        )

    qualified = [row for row in results if row["hours_worked"] >= MIN_HOURS_QUALIFIED]
    for rank_field, metric in (
        ("tph_rank", "tph"),
        ("conversion_rank", "conversion_rate"),
        ("dials_rank", "dials"),
    ):
        # sorted() is stable, so ties keep input order and ranks stay deterministic.
        for position, row in enumerate(sorted(qualified, key=lambda r: r[metric], reverse=True), start=1):
            row[rank_field] = position
    return results


# ---------------------------------------------------------------------------
# Daily snapshot
# ---------------------------------------------------------------------------


def compute_daily_kpis(
    agents: Sequence[Mapping[str, Any]],
    production: Sequence[Any],
) -> dict[str, Any]:
    """Daily totals and rates from merged agent rows plus production dispositions."""
    total_dials = sum(a["dialed"] for a in agents)
    total_connects = sum(a["connects"] for a in agents)
    total_contacts = sum(a["contacts"] for a in agents)
    total_transfers = sum(a["transfers"] for a in agents)
    total_hours = sum(a["hours_worked"] for a in agents)

    dispositions = sum_dispositions(production)

    daily: dict[str, Any] = {
        "total_agents": len(agents),
        "agents_with_transfers": sum(1 for a in agents if a["transfers"] > 0),
        "total_dials": total_dials,
        "total_connects": total_connects,
        "total_contacts": total_contacts,
        "total_transfers": total_transfers,
        "total_man_hours": round(total_hours, 1),
        "total_talk_time_min": round(sum(a["talk_time_min"] for a in agents), 1),
        "total_wait_time_min": round(sum(a["wait_time_min"] for a in agents), 1),
        "total_wrap_time_min": round(sum(a["wrap_time_min"] for a in agents), 1),
        "connect_rate": round(safe_div(total_connects, total_dials) * 100, 2),
        "contact_rate": round(safe_div(total_contacts, total_connects) * 100, 2),
        "conversion_rate": round(safe_div(total_transfers, total_contacts) * 100, 2),
        "transfers_per_hour": round(safe_div(total_transfers, total_hours), 2),
        "dials_per_hour": round(safe_div(total_dials, total_hours), 1),
        "dispositions": dispositions,
        "distribution": tph_distribution(agents),
        "prev_day_transfers": None,
        "prev_day_tph": None,
        "delta_transfers": None,
        "delta_tph": None,
    }
    daily.update(_disposition_ratios(dispositions, total_connects))
    return daily


def merge_shift_dispositions(daily: dict[str, Any], shift_report: Sequence[Any]) -> dict[str, Any]:
    """
    Fill disposition keys the production report lacks from the shift report,
    then recompute the disposition ratios.
    """
    merged = dict(daily["dispositions"])
    for key, value in shift_dispositions(shift_report).items():
        merged.setdefault(key, value)
    result = {**daily, "dispositions": merged}
    if daily["total_connects"] > 0:
        result.update(_disposition_ratios(merged, daily["total_connects"]))
    return result


def shift_dispositions(shift_report: Sequence[Any]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for row in shift_report:
        if row.calls > 0 and row.call_status:
            key = disposition_key(row.call_status)
            totals[key] = totals.get(key, 0.0) + row.calls
    return totals


def compute_subcampaign_fallback(subcampaign: Sequence[Any]) -> dict[str, Any]:
    """Daily totals from the subcampaign summary when no agent rows exist."""
    total_dials = sum(r.dialed for r in subcampaign)
    total_connects = sum(r.connects for r in subcampaign)
    total_contacts = sum(r.contacts for r in subcampaign)
    total_transfers = sum(r.transfers for r in subcampaign)
    total_hours = sum(r.man_hours for r in subcampaign)
    return {
        "total_agents": 0,
        "agents_with_transfers": 0,
        "total_dials": total_dials,
        "total_connects": total_connects,
        "total_contacts": total_contacts,
        "total_transfers": total_transfers,
        "total_man_hours": round(total_hours, 1),
        "total_talk_time_min": 0.0,
        "total_wait_time_min": 0.0,
        "total_wrap_time_min": 0.0,
        "connect_rate": round(safe_div(total_connects, total_dials) * 100, 2),
        "contact_rate": round(safe_div(total_contacts, total_connects) * 100, 2),
        "conversion_rate": round(safe_div(total_transfers, total_contacts) * 100, 2),
        "transfers_per_hour": round(safe_div(total_transfers, total_hours), 2),
        "dials_per_hour": round(safe_div(total_dials, total_hours), 1),
        "dead_air_ratio": 0.0,
        "hung_up_ratio": 0.0,
        "waste_rate": 0.0,
        "transfer_success_rate": 0.0,
        "dispositions": {},
        "distribution": None,
        "prev_day_transfers": None,
        "prev_day_tph": None,
        "delta_transfers": None,
        "delta_tph": None,
    }


def compute_campaign_aggregate(campaign_summary: Sequence[Any]) -> dict[str, Any]:
    return {
        "total_campaigns": len(campaign_summary),
        "total_system_dials": sum(c.dialed for c in campaign_summary),
        "total_system_connects": sum(c.connects for c in campaign_summary),
    }


def tph_distribution(agents: Sequence[Mapping[str, Any]]) -> dict[str, Any] | None:
    """
    Spread of transfers-per-hour across qualified agents.

    Quantiles use linear interpolation; ``std`` is the population standard
    deviation. None when no agent qualifies.
    """
    values = sorted(
        safe_div(a["transfers"], a["hours_worked"])
        for a in agents
        if a["hours_worked"] >= MIN_HOURS_QUALIFIED
    )
    if not values:
        return None
    array = np.asarray(values, dtype=float)
    distribution: dict[str, Any] = {"count": len(values)}
    for name, q in _DISTRIBUTION_QUANTILES.items():
        distribution[name] = round(float(np.quantile(array, q)), 2)
    distribution["mean"] = round(float(array.mean()), 2)
    distribution["std"] = round(float(array.std()), 2) if len(values) > 1 else 0.0
    return distribution


def compute_deltas(
    total_transfers: float,
    transfers_per_hour: float,
    previous: Mapping[str, Any] | None,
) -> dict[str, float | None]:
    """
    Differences against the nearest prior computed day.

    *previous* holds that day's ``total_transfers`` and
    ``transfers_per_hour``; all four fields are None when it is None.
    """
    if previous is None:
        return {
            "prev_day_transfers": None,
            "prev_day_tph": None,
            "delta_transfers": None,
            "delta_tph": None,
        }
    prev_transfers = previous["total_transfers"]
    prev_tph = previous["transfers_per_hour"]
    return {
        "prev_day_transfers": prev_transfers,
        "prev_day_tph": prev_tph,
        "delta_transfers": total_transfers - prev_transfers,
        "delta_tph": round(transfers_per_hour - prev_tph, 2),
    }


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


def compute_skill_summary(production: Sequence[Any]) -> list[dict[str, Any]]:
    """
    One row per skill from production rows, highest transfers first.

    Rows without a skill are left out.
    """
    groups: dict[str, dict[str, Any]] = {}
    for row in production:
        skill = row.skill or ""
        if skill in {"", "Unknown"}:
            continue
        entry = groups.setdefault(
            skill,
            {"agents": set(), "connects": 0.0, "contacts": 0.0, "transfers": 0.0, "hours": 0.0, "rows": []},
        )
        entry["agents"].add(row.rep)
        entry["connects"] += row.connects
        entry["contacts"] += row.contacts
        entry["transfers"] += row.transfers
        entry["hours"] += row.man_hours
        entry["rows"].append(row)

    summary = [
        {
            "skill": skill,
            "agent_count": len(entry["agents"]),
            "total_connects": entry["connects"],
            "total_contacts": entry["contacts"],
            "total_transfers": entry["transfers"],
            "total_man_hours": round(entry["hours"], 1),
            "avg_tph": round(safe_div(entry["transfers"], entry["hours"]), 2),
            "conversion_rate": round(safe_div(entry["transfers"], entry["contacts"]) * 100, 2),
            "dispositions": sum_dispositions(entry["rows"]),
        }
        for skill, entry in groups.items()
    ]
    summary.sort(key=lambda row: (-row["total_transfers"], row["skill"]))
    return summary

"""
kpi/dialer_enrichment.py

Supplementary breakdowns stored in ``DailyKPI.raw_data``.

Everything here is derived from report rows that do not feed the headline
metrics: campaign and subcampaign totals, hourly volume, pause sessions,
call-log dispositions and agent/campaign cross tabs. Each section is
omitted when its source report is absent for the day.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from app.parsers.values import parse_minutes

TOP_AGENTS_LIMIT = 15
MIN_HOURS_COACHING = 4.0

_NON_PRODUCTIVE_ACCOUNT = re.compile(r"\b(QA|HR)\b", re.IGNORECASE)


def is_non_productive_account(name: str) -> bool:
    """QA and HR logins are excluded from coaching lists and agent alerts."""
    return _NON_PRODUCTIVE_ACCOUNT.search(name) is not None


_SOURCE_KEYS: tuple[str, ...] = (
    "agent_summary",
    "agent_summary_campaign",
    "agent_summary_subcampaign",
    "agent_analysis",
    "agent_pause_time",
    "calls_per_hour",
    "campaign_call_log",
    "campaign_summary",
    "subcampaign",
    "production",
    "production_subcampaign",
    "shift_report",
)


def build_raw_data(inputs: Mapping[str, Any], agents: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """Assemble every available section for one day."""
    raw: dict[str, Any] = {}

    if agents:
        raw["top_agents"] = top_agents(agents)
        raw["bottom_agents"] = bottom_agents(agents)

    campaign_summary = inputs.get("campaign_summary") or []
    if campaign_summary:
        raw["campaign_aggregate"] = campaign_aggregate(campaign_summary)
        raw["campaigns"] = campaigns(campaign_summary)

    if inputs.get("calls_per_hour"):
        raw["hourly"] = hourly(inputs["calls_per_hour"])
    if inputs.get("subcampaign"):
        raw["subcampaigns"] = subcampaigns(inputs["subcampaign"])
    if inputs.get("shift_report"):
        raw["system_dispositions"] = system_dispositions(inputs["shift_report"])
        raw["campaign_dispositions"] = campaign_dispositions(inputs["shift_report"])
    if inputs.get("production_subcampaign"):
        raw["production_subcampaigns"] = production_subcampaigns(inputs["production_subcampaign"])
    if inputs.get("agent_summary_subcampaign"):
        raw["agent_campaigns"] = agent_campaigns(inputs["agent_summary_subcampaign"])
    if inputs.get("agent_analysis"):
        raw["campaign_agent_analysis"] = campaign_agent_analysis(inputs["agent_analysis"])
    if inputs.get("agent_pause_time"):
        raw["pause_analytics"] = pause_analytics(inputs["agent_pause_time"])
    if inputs.get("campaign_call_log"):
        raw["call_log"] = call_log(inputs["campaign_call_log"])

    raw["report_sources"] = report_sources(inputs)
    return raw


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


# ---------------------------------------------------------------------------
# Agent leaderboards
# ---------------------------------------------------------------------------


def _agent_card(agent: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "name": agent["agent_name"],
        "tph": agent["tph"],
        "transfers": agent["transfers"],
        "hours": agent["hours_worked"],
        "skill": agent["skill"],
        "connects": agent["connects"],
        "conversion_rate": agent["conversion_rate"],
    }


def top_agents(agents: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    qualified = [a for a in agents if a["hours_worked"] >= 2.0]
    qualified.sort(key=lambda a: a["tph"], reverse=True)
    return [_agent_card(a) for a in qualified[:TOP_AGENTS_LIMIT]]


def bottom_agents(agents: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Lowest TPH among agents with a full coaching shift, QA/HR excluded."""
    qualified = [
        a
        for a in agents
        if a["hours_worked"] >= MIN_HOURS_COACHING
        and not is_non_productive_account(a["agent_name"])
    ]
    qualified.sort(key=lambda a: a["tph"])
    return [_agent_card(a) for a in qualified[:TOP_AGENTS_LIMIT]]


# ---------------------------------------------------------------------------
# Campaigns
# ---------------------------------------------------------------------------


def campaign_aggregate(rows: Sequence[Any]) -> dict[str, Any]:
    dialed_rows = [r for r in rows if r.dialed > 0]
    count = len(dialed_rows)

    def _avg(attr: str) -> float:
        return round(_ratio(sum(getattr(r, attr) for r in dialed_rows), count), 2)

    return {
        "total_campaigns": len(rows),
        "total_system_connects": sum(r.connects for r in rows),
        "total_system_dials": sum(r.dialed for r in rows),
        "total_hangups": sum(r.hangups for r in rows),
        "total_leads": sum(r.total_leads for r in rows),
        "total_transfers": sum(r.transfers for r in rows),
        "total_man_hours": round(sum(r.man_hours for r in rows), 1),
        "avg_drop_rate": _avg("drop_rate_pct"),
        "avg_connect_rate": _avg("connect_pct"),
        "avg_noans_rate": _avg("noans_rate_pct"),
        "avg_norb_rate": _avg("norb_rate_pct"),
    }


def campaigns(rows: Sequence[Any]) -> list[dict[str, Any]]:
    active = sorted((r for r in rows if r.connects > 0), key=lambda r: r.connects, reverse=True)
    return [
        {
            "campaign": r.campaign,
            "type": r.campaign_type,
            "dialed": r.dialed,
            "connects": r.connects,
            "contacts": r.contacts,
            "transfers": r.transfers,
            "man_hours": round(r.man_hours, 1),
            "connect_rate": r.connect_pct,
            "drop_rate": r.drop_rate_pct,
            "hangups": r.hangups,
        }
        for r in active
    ]


def subcampaigns(rows: Sequence[Any]) -> list[dict[str, Any]]:
    active = sorted((r for r in rows if r.connects > 0), key=lambda r: r.connects, reverse=True)
    return [
        {
            "campaign": r.campaign,
            "subcampaign": r.subcampaign,
            "dialed": r.dialed,
            "connects": r.connects,
            "contacts": r.contacts,
            "transfers": r.transfers,
            "man_hours": round(r.man_hours, 1),
            "connect_rate": r.connect_rate_pct,
            "conversion_rate": r.conversion_rate_pct,
        }
        for r in active[:30]
    ]


def production_subcampaigns(rows: Sequence[Any]) -> list[dict[str, Any]]:
    active = [r for r in rows if r.connects > 0 or r.sales_count > 0]
    active.sort(key=lambda r: r.connects, reverse=True)
    return [
        {
            "subcampaign": r.subcampaign,
            "connects": r.connects,
            "contacts": r.contacts,
            "sales": r.sales_count,
            "ans_machine": r.ans_machine,
            "inbound_voicemail": r.inbound_voicemail,
        }
        for r in active[:20]
    ]


# ---------------------------------------------------------------------------
# Call volume and dispositions
# ---------------------------------------------------------------------------


def hourly(rows: Sequence[Any]) -> list[dict[str, Any]]:
    return [
        {
            "hour": r.hour,
            "total_calls": r.total_calls,
            "connects": r.connects,
            "contacts": r.contacts,
            "transfers": r.transfers,
            "outbound": r.outbound,
            "dropped": r.dropped,
            "drop_rate": r.drop_rate_pct,
        }
        for r in rows
        if r.hour.upper() != "TOTAL" and r.total_calls > 0
    ]


def _status_totals(rows: Sequence[Any]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for r in rows:
        if r.call_status and r.calls > 0:
            totals[r.call_status] = totals.get(r.call_status, 0.0) + r.calls
    return totals


def system_dispositions(rows: Sequence[Any]) -> list[dict[str, Any]]:
    totals = _status_totals(rows)
    grand_total = sum(totals.values())
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        {"status": status, "calls": calls, "percent": round(_ratio(calls, grand_total) * 100, 1)}
        for status, calls in ordered
    ]


def campaign_dispositions(rows: Sequence[Any]) -> list[dict[str, Any]]:
    """Per-campaign status counts for the ten busiest campaigns."""
    by_campaign: dict[str, list[Any]] = {}
    for r in rows:
        by_campaign.setdefault(r.campaign or "Unknown", []).append(r)

    summaries = []
    for campaign, campaign_rows in by_campaign.items():
        totals = _status_totals(campaign_rows)
        summaries.append(
            {
                "campaign": campaign,
                "total_calls": sum(totals.values()),
                "dispositions": dict(sorted(totals.items(), key=lambda item: item[1], reverse=True)),
            }
        )
    summaries.sort(key=lambda s: s["total_calls"], reverse=True)
    return summaries[:10]


def call_log(rows: Sequence[Any]) -> list[dict[str, Any]]:
    active = sorted((r for r in rows if r.calls > 0), key=lambda r: r.calls, reverse=True)
    return [
        {"status": r.call_status, "description": r.description, "calls": r.calls, "percent": r.percent}
        for r in active
    ]


# ---------------------------------------------------------------------------
# Agent / campaign cross tabs
# ---------------------------------------------------------------------------


def agent_campaigns(rows: Sequence[Any]) -> list[dict[str, Any]]:
    """Per-agent totals across the campaigns each agent worked."""
    grouped: dict[str, dict[str, Any]] = {}
    for r in rows:
        entry = grouped.setdefault(
            r.rep,
            {"name": r.rep, "campaigns": set(), "dials": 0.0, "connects": 0.0,
             "contacts": 0.0, "transfers": 0.0, "hours": 0.0},
        )
        if r.campaign:
            entry["campaigns"].add(r.campaign)
        entry["dials"] += r.dialed
        entry["connects"] += r.connects
        entry["contacts"] += r.contacts
        entry["transfers"] += r.transfers
        entry["hours"] += r.hours_worked

    result = []
    for entry in grouped.values():
        if entry["hours"] <= 0:
            continue
        names = sorted(entry["campaigns"])
        result.append(
            {
                **entry,
                "campaigns": names,
                "campaign_count": len(names),
                "hours": round(entry["hours"], 1),
                "tph": round(_ratio(entry["transfers"], entry["hours"]), 2),
            }
        )
    result.sort(key=lambda e: e["transfers"], reverse=True)
    return result[:50]


def campaign_agent_analysis(rows: Sequence[Any]) -> list[dict[str, Any]]:
    grouped: dict[str, dict[str, Any]] = {}
    for r in rows:
        campaign = r.campaign or "Unknown"
        entry = grouped.setdefault(
            campaign,
            {"campaign": campaign, "agents": set(), "hours": 0.0, "transfers": 0.0,
             "connects": 0.0, "contacts": 0.0, "call_backs": 0.0},
        )
        entry["agents"].add(r.rep)
        entry["hours"] += r.hours_worked
        entry["transfers"] += r.transfers
        entry["connects"] += r.connects
        entry["contacts"] += r.contacts
        entry["call_backs"] += r.call_backs

    result = []
    for entry in grouped.values():
        if entry["hours"] <= 0:
            continue
        result.append(
            {
                **entry,
                "agents": len(entry["agents"]),
                "hours": round(entry["hours"], 1),
                "tph": round(_ratio(entry["transfers"], entry["hours"]), 2),
                "conversion_rate": round(_ratio(entry["transfers"], entry["contacts"]) * 100, 2),
            }
        )
    result.sort(key=lambda e: e["transfers"], reverse=True)
    return result[:20]


def pause_analytics(rows: Sequence[Any]) -> dict[str, Any]:
    """Break-code counts and the agents with the most paused minutes."""
    minutes_by_agent: dict[str, float] = {}
    break_codes: dict[str, int] = {}
    for r in rows:
        minutes = parse_minutes(r.time_paused)
        minutes_by_agent[r.rep] = minutes_by_agent.get(r.rep, 0.0) + minutes
        code = r.break_code or "Unknown"
        break_codes[code] = break_codes.get(code, 0) + 1

    pausers = {name: total for name, total in minutes_by_agent.items() if total > 0}
    total_minutes = sum(pausers.values())
    top = sorted(pausers.items(), key=lambda item: item[1], reverse=True)[:10]
    return {
        "total_sessions": len(rows),
        "agents_with_pauses": len(pausers),
        "total_pause_minutes": round(total_minutes, 1),
        "avg_pause_per_agent_min": round(_ratio(total_minutes, len(pausers)), 1),
        "break_codes": [
            {"code": code, "count": count}
            for code, count in sorted(break_codes.items(), key=lambda item: item[1], reverse=True)
        ],
        "top_pausers": [{"name": name, "pause_minutes": round(total, 1)} for name, total in top],
    }


def report_sources(inputs: Mapping[str, Any]) -> dict[str, int]:
    counts = {key: len(inputs.get(key) or []) for key in _SOURCE_KEYS}
    counts["total_source_rows"] = sum(counts.values())
    return counts

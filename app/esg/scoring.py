# app/esg/scoring.py

from __future__ import annotations

from typing import Any, Iterable

RISK_LEVELS = ["low", "medium", "high"]

# scores are 0..10
LOW_RISK_MIN = 7.0
MEDIUM_RISK_MIN = 5.0


def clamp_score(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if v < 0:
        v = 0.0
    if v > 10:
        v = 10.0
    return round(v, 2)


def risk_level(score: float | None) -> str:
    # unknown scores are treated as the worst case
    if score is None:
        return "high"
    if score >= LOW_RISK_MIN:
        return "low"
    if score >= MEDIUM_RISK_MIN:
        return "medium"
    return "high"


def _avg(values: list[float]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def summarize(rows: Iterable[Any]) -> dict[str, Any]:
    """
    rows: objects with esg_score / environment_score / social_score / governance_score
    Returns the summary shape the ESG dashboard reads.
    """
    rows = list(rows or [])
    dist = {lvl: 0 for lvl in RISK_LEVELS}
    esg, env, soc, gov = [], [], [], []

    for r in rows:
        dist[risk_level(r.esg_score)] += 1
        if r.esg_score is not None:
            esg.append(r.esg_score)
        if r.environment_score is not None:
            env.append(r.environment_score)
        if r.social_score is not None:
            soc.append(r.social_score)
        if r.governance_score is not None:
            gov.append(r.governance_score)

    return {
        "totalProducts": len(rows),
        "averageESGScore": _avg(esg),
        "riskDistribution": dist,
        "averageScores": {
            "environmental": _avg(env),
            "social": _avg(soc),
            "governance": _avg(gov),
        },
    }

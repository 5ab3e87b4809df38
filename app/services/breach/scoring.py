from __future__ import annotations

from typing import Iterable, Optional

from app.services.breach.normalizer import BreachRecord, MetricsHints

POINTS_PER_BREACH = 10
BREACH_POINTS_CAP = 50
PLAINTEXT_PENALTY = 30
EASY_TO_CRACK_PENALTY = 20


def _positive(value) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, (int, float)) and value > 0


def calculate_risk_score(
    records: Iterable[BreachRecord],
    metrics: Optional[MetricsHints] = None,
) -> int:
    """
    Additive base from the breach count, a password-storage penalty, then the
    provider's own risk score as a floor. Always an int in [0, 100].
    """
    records = list(records)
    score = min(len(records) * POINTS_PER_BREACH, BREACH_POINTS_CAP)

    risks = {record.password_risk for record in records}
    strength = metrics.password_strength if metrics else {}

    if "plaintext" in risks or _positive(strength.get("PlainText")):
        score += PLAINTEXT_PENALTY
    elif "easytocrack" in risks or _positive(strength.get("EasyToCrack")):
        score += EASY_TO_CRACK_PENALTY

    if metrics and metrics.risk_score is not None:
        score = max(score, metrics.risk_score)

    return int(max(0, min(100, round(score))))


def risk_band(score: int) -> str:
    if score >= 75:
        return "high"
    if score >= 45:
        return "elevated"
    return "stable"

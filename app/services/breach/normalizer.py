"""
Mapping of raw provider breach entries into canonical BreachRecord values.

The analytics payload is not consistently shaped: the same response can mix
camelCase keys (`breachedDate`, `exposedData`) with title-case variants
(`"Breached Date"`, `"Exposed Records"`), send lists as `;`-joined strings and
flags as "Yes"/"No". Everything here is total: a missing or wrongly typed
field becomes None for that attribute only, never an exception.
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from app.core.limits import XPOSED_LOGO_PATH, XPOSED_SITE_ORIGIN

UNKNOWN_BREACH_NAME = "Unknown Breach"

ISO_DATE_PATTERN = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")
DATA_LEAF_PREFIX = "data_"

PASSWORD_RISK_LABELS = {
    "plaintext": "plaintext",
    "easytocrack": "easytocrack",
    "hardtocrack": "hardtocrack",
    "stronghash": "hardtocrack",
    "unknown": "unknown",
}


@dataclass
class BreachRecord:
    name: str = UNKNOWN_BREACH_NAME
    domain: Optional[str] = None
    date: Optional[str] = None
    exposed_data: Optional[list[str]] = None
    exposed_records: Optional[int] = None
    description: Optional[str] = None
    industry: Optional[str] = None
    password_risk: Optional[str] = None
    verified: Optional[bool] = None
    searchable: Optional[bool] = None
    sensitive: Optional[bool] = None
    logo: Optional[str] = None
    reference_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "domain": self.domain,
            "date": self.date,
            "exposedData": list(self.exposed_data) if self.exposed_data else None,
            "exposedRecords": self.exposed_records,
            "description": self.description,
            "industry": self.industry,
            "passwordRisk": self.password_risk,
            "verified": self.verified,
            "logo": self.logo,
            "referenceURL": self.reference_url,
            "searchable": self.searchable,
            "sensitive": self.sensitive,
        }


@dataclass
class MetricsHints:
    risk_label: Optional[str] = None
    risk_score: Optional[float] = None
    password_strength: dict[str, Any] = field(default_factory=dict)
    industry: Optional[list] = None
    xposed_data: list = field(default_factory=list)
    yearwise_details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "risk": (
                {"risk_label": self.risk_label, "risk_score": self.risk_score}
                if self.risk_label is not None or self.risk_score is not None
                else None
            ),
            "passwordStrength": data["password_strength"] or None,
            "industry": data["industry"],
            "exposedDataTypes": data["xposed_data"] or None,
        }


# ---------- primitive readers ----------

def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _first_item(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _first_text(raw: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = _text(raw.get(key))
        if value is not None:
            return value
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else None
    if isinstance(value, str):
        digits = value.strip().replace(",", "")
        if digits.isdigit():
            return int(digits)
    return None


def _first_count(raw: dict, *keys: str) -> Optional[int]:
    for key in keys:
        value = _count(raw.get(key))
        if value is not None:
            return value
    return None


def _yes_no(value: Any) -> Optional[bool]:
    if not isinstance(value, str):
        return None
    lowered = value.strip().lower()
    if lowered == "yes":
        return True
    if lowered == "no":
        return False
    return None


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


# ---------- field extractors ----------

def extract_exposed_data_types(xposed_data: Any) -> list[str]:
    """
    Walk the provider's `items -> children -> children -> leaf` tree and
    collect leaf names carrying the `data_` prefix, e.g. `data_Email_addresses`
    becomes `Email addresses`.
    """
    types: list[str] = []
    if not isinstance(xposed_data, list):
        return types

    for item in xposed_data:
        branches = _as_dict(item).get("children")
        if not isinstance(branches, list):
            continue
        for child in branches:
            leaves = _as_dict(child).get("children")
            if not isinstance(leaves, list):
                continue
            for leaf in leaves:
                name = _as_dict(leaf).get("name")
                if isinstance(name, str) and name.startswith(DATA_LEAF_PREFIX):
                    label = name[len(DATA_LEAF_PREFIX):].replace("_", " ").strip()
                    if label:
                        types.append(label)
    return _dedupe(types)


def _exposed_data(raw: dict, metrics: MetricsHints) -> Optional[list[str]]:
    value = raw.get("exposedData")
    items: list[str] = []

    if isinstance(value, list):
        items = [v.strip() for v in value if isinstance(v, str) and v.strip()]
    elif isinstance(value, str):
        items = [token.strip() for token in value.split(";") if token.strip()]

    if not items:
        items = extract_exposed_data_types(metrics.xposed_data)

    items = _dedupe(items)
    return items or None


def _breach_date(raw: dict, description: Optional[str]) -> Optional[str]:
    explicit = _text(raw.get("breachedDate"))
    if explicit:
        return explicit

    from_details = _iso_date_in(_text(raw.get("details")))
    if from_details:
        return from_details

    return _text(raw.get("Breached Date")) or _iso_date_in(description)


def _iso_date_in(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = ISO_DATE_PATTERN.search(text)
    return match.group(1) if match else None


def normalize_logo_url(logo: Any) -> Optional[str]:
    value = _text(logo)
    if value is None:
        return None
    if SCHEME_PATTERN.match(value):
        return value
    if value.startswith("/"):
        return f"{XPOSED_SITE_ORIGIN}{value}"
    return f"{XPOSED_LOGO_PATH}{value}"


def _password_risk(raw: dict) -> Optional[str]:
    label = _first_text(raw, "passwordRisk", "Password Risk")
    if label is None:
        return None
    key = re.sub(r"[\s_\-]", "", label.lower())
    return PASSWORD_RISK_LABELS.get(key, "unknown")


def _flag(raw: dict, explicit_key: str, text_key: str) -> Optional[bool]:
    explicit = raw.get(explicit_key)
    if isinstance(explicit, bool):
        return explicit
    for key in (text_key, explicit_key):
        answer = _yes_no(raw.get(key))
        if answer is not None:
            return answer
    return None


# ---------- public API ----------

def extract_metrics(analytics: Any) -> MetricsHints:
    metrics = _as_dict(_as_dict(analytics).get("BreachMetrics"))

    risk = _as_dict(_first_item(metrics.get("risk")))
    industry = metrics.get("industry")
    xposed_data = metrics.get("xposed_data")

    return MetricsHints(
        risk_label=_text(risk.get("risk_label")),
        risk_score=_number(risk.get("risk_score")),
        password_strength=_as_dict(_first_item(metrics.get("passwords_strength"))),
        industry=industry if isinstance(industry, list) else None,
        xposed_data=xposed_data if isinstance(xposed_data, list) else [],
        yearwise_details=_as_dict(_first_item(metrics.get("yearwise_details"))),
    )


def extract_breach_details(analytics: Any) -> list:
    details = _as_dict(_as_dict(analytics).get("ExposedBreaches")).get("breaches_details")
    return details if isinstance(details, list) else []


def normalize_breach(raw: Any, metrics: Optional[MetricsHints] = None) -> BreachRecord:
    raw = _as_dict(raw)
    metrics = metrics or MetricsHints()

    description = _first_text(raw, "exposureDescription", "details", "Exposure Description")

    return BreachRecord(
        name=_first_text(raw, "breach", "breachID", "Breach ID") or UNKNOWN_BREACH_NAME,
        domain=_first_text(raw, "domain", "Domain"),
        date=_breach_date(raw, description),
        exposed_data=_exposed_data(raw, metrics),
        exposed_records=_first_count(raw, "exposedRecords", "Exposed Records"),
        description=description,
        industry=_first_text(raw, "industry", "Industry"),
        password_risk=_password_risk(raw),
        verified=_flag(raw, "verified", "Verified"),
        searchable=_flag(raw, "searchable", "Searchable"),
        sensitive=_flag(raw, "sensitive", "Sensitive"),
        logo=normalize_logo_url(_first_text(raw, "logo", "Logo")),
        reference_url=_first_text(raw, "referenceURL", "Reference URL"),
    )


def normalize_breaches(analytics: Any) -> tuple[list[BreachRecord], MetricsHints]:
    metrics = extract_metrics(analytics)
    records = [normalize_breach(raw, metrics) for raw in extract_breach_details(analytics)]
    return records, metrics


def build_year_history(metrics: MetricsHints) -> list[dict[str, int]]:
    history = []
    for key, value in metrics.yearwise_details.items():
        if not isinstance(key, str) or not key.startswith("y"):
            continue
        year = key[1:]
        count = _count(value)
        if year.isdigit() and count is not None:
            history.append({"year": int(year), "count": count})
    return sorted(history, key=lambda entry: entry["year"])


def build_breach_snapshot(
    email: str,
    analytics: Any,
    records: list[BreachRecord],
    metrics: MetricsHints,
    risk_score: int,
) -> dict[str, Any]:
    analytics = _as_dict(analytics)
    breach_summary = analytics.get("BreachesSummary")
    pastes = analytics.get("PastesSummary")

    return {
        "success": True,
        "email": email,
        "riskScore": risk_score,
        "breachCount": len(records),
        "breachSummary": breach_summary if isinstance(breach_summary, dict) else None,
        "breaches": [record.to_dict() for record in records],
        "metrics": metrics.to_dict(),
        "yearHistory": build_year_history(metrics),
        "pastes": pastes if isinstance(pastes, (dict, list)) else None,
    }

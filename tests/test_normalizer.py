"""Tests for the breach record normalizer."""

from app.services.breach.normalizer import (
    MetricsHints,
    build_breach_snapshot,
    build_year_history,
    extract_exposed_data_types,
    extract_metrics,
    normalize_breach,
    normalize_breaches,
    normalize_logo_url,
)

XPOSED_TREE = [
    {
        "name": "Personal",
        "children": [
            {
                "name": "Contact",
                "children": [
                    {"name": "data_Email_addresses", "value": 1},
                    {"name": "data_Phone_numbers", "value": 1},
                    {"name": "Usernames", "value": 1},
                ],
            }
        ],
    },
    {
        "name": "Security",
        "children": [{"name": "Credentials", "children": [{"name": "data_Passwords"}]}],
    },
]


def test_name_falls_back_through_id_fields():
    assert normalize_breach({"breach": "Adobe", "breachID": "ignored"}).name == "Adobe"
    assert normalize_breach({"breach": "", "breachID": "LinkedIn"}).name == "LinkedIn"
    assert normalize_breach({"Breach ID": "Canva"}).name == "Canva"


def test_name_defaults_to_unknown_breach():
    assert normalize_breach({}).name == "Unknown Breach"
    assert normalize_breach({"breach": "  ", "breachID": None, "Breach ID": 42}).name == "Unknown Breach"


def test_semicolon_string_exposed_data_is_split_and_trimmed():
    record = normalize_breach({"exposedData": "a; b ;c"})
    assert record.exposed_data == ["a", "b", "c"]


def test_list_exposed_data_is_kept_and_deduplicated():
    record = normalize_breach({"exposedData": ["Emails", "Emails", " Passwords ", "", 7]})
    assert record.exposed_data == ["Emails", "Passwords"]


def test_exposed_data_falls_back_to_metrics_tree():
    metrics = MetricsHints(xposed_data=XPOSED_TREE)
    record = normalize_breach({"exposedData": ";;"}, metrics)
    assert record.exposed_data == ["Email addresses", "Phone numbers", "Passwords"]


def test_exposed_data_absent_everywhere_is_none():
    assert normalize_breach({"exposedData": None}).exposed_data is None


def test_tree_extraction_tolerates_broken_nodes():
    broken = [None, "x", {"children": 5}, {"children": [{"children": "leaf"}, {"children": [{"name": 3}]}]}]
    assert extract_exposed_data_types(broken) == []
    assert extract_exposed_data_types({"not": "a list"}) == []


def test_date_prefers_explicit_field():
    record = normalize_breach({"breachedDate": "2019-03-01", "details": "Leaked on 2020-01-01"})
    assert record.date == "2019-03-01"


def test_date_extracted_from_description_text():
    record = normalize_breach({"details": "The breach was discovered on 2021-07-15 by researchers."})
    assert record.date == "2021-07-15"


def test_date_in_details_beats_title_case_date_field():
    record = normalize_breach(
        {
            "Breached Date": "2012-07-01T00:00:00+00:00",
            "details": "Leaked on 2012-06-30 by a researcher.",
        }
    )
    assert record.date == "2012-06-30"


def test_title_case_date_used_when_details_has_no_date():
    record = normalize_breach(
        {"Breached Date": "2012-07-01", "details": "No date here", "exposureDescription": "Seen 2013-01-01"}
    )
    assert record.date == "2012-07-01"


def test_date_missing_stays_none():
    record = normalize_breach({"exposureDescription": "No dates here, sorry."})
    assert record.date is None


def test_logo_urls_are_made_absolute():
    assert normalize_logo_url("foo.png") == "https://xposedornot.com/static/logos/foo.png"
    assert normalize_logo_url("/x/y.png") == "https://xposedornot.com/x/y.png"
    assert normalize_logo_url("https://a/b.png") == "https://a/b.png"
    assert normalize_logo_url("") is None
    assert normalize_logo_url(12) is None


def test_flags_are_tri_state():
    record = normalize_breach({"verified": False, "Verified": "Yes", "Searchable": "No"})
    assert record.verified is False
    assert record.searchable is False
    assert record.sensitive is None

    record = normalize_breach({"Verified": "yes", "Sensitive": "Maybe"})
    assert record.verified is True
    assert record.sensitive is None


def test_title_case_variants_are_read():
    record = normalize_breach(
        {
            "Breach ID": "Dropbox",
            "Domain": "dropbox.com",
            "Breached Date": "2012-07-01",
            "Exposed Records": "68,648,009",
            "Exposure Description": "Credentials were leaked.",
            "Industry": "Information Technology",
            "Password Risk": "Hard to Crack",
            "Reference URL": "https://example.com/dropbox",
        }
    )
    assert record.name == "Dropbox"
    assert record.domain == "dropbox.com"
    assert record.date == "2012-07-01"
    assert record.exposed_records == 68648009
    assert record.description == "Credentials were leaked."
    assert record.industry == "Information Technology"
    assert record.password_risk == "hardtocrack"
    assert record.reference_url == "https://example.com/dropbox"


def test_exposed_records_rejects_garbage():
    assert normalize_breach({"exposedRecords": True}).exposed_records is None
    assert normalize_breach({"exposedRecords": "lots"}).exposed_records is None
    assert normalize_breach({"exposedRecords": -4}).exposed_records is None
    assert normalize_breach({"exposedRecords": 1200}).exposed_records == 1200


def test_normalize_never_raises_on_odd_input():
    for raw in (None, [], "string", 12, {"exposedData": {"a": 1}, "logo": ["x"], "verified": "maybe"}):
        record = normalize_breach(raw)
        assert record.name == "Unknown Breach"


def test_extract_metrics_tolerates_missing_sections():
    assert extract_metrics(None).risk_score is None
    metrics = extract_metrics({"BreachMetrics": {"risk": [{"risk_label": "High", "risk_score": "82"}]}})
    assert metrics.risk_label == "High"
    assert metrics.risk_score == 82.0


def test_year_history_is_sorted():
    metrics = MetricsHints(yearwise_details={"y2019": 2, "y2012": 1, "y2020": 0, "total": 9})
    assert build_year_history(metrics) == [
        {"year": 2012, "count": 1},
        {"year": 2019, "count": 2},
        {"year": 2020, "count": 0},
    ]


def test_snapshot_carries_normalized_breaches():
    analytics = {
        "ExposedBreaches": {"breaches_details": [{"breach": "Adobe", "logo": "adobe.png"}]},
        "BreachesSummary": {"site": "Adobe"},
        "PastesSummary": {"cnt": 0},
    }
    records, metrics = normalize_breaches(analytics)
    snapshot = build_breach_snapshot("a@example.com", analytics, records, metrics, 10)

    assert snapshot["breachCount"] == 1
    assert snapshot["riskScore"] == 10
    assert snapshot["breaches"][0]["name"] == "Adobe"
    assert snapshot["breaches"][0]["logo"] == "https://xposedornot.com/static/logos/adobe.png"
    assert snapshot["breachSummary"] == {"site": "Adobe"}
    assert snapshot["pastes"] == {"cnt": 0}

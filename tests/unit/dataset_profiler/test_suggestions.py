import pytest

from modules.dataset_profiler.core.suggestions import (
    estimate_complexity,
    extract_analysis_type,
    extract_required_columns,
    extract_time_estimate,
    parse_analysis_suggestions,
)

CONTENT = """Here are some ideas:

1. **Defect Trend Review** - Track "defect_rate" over time by Vendor_name. Takes about 2 hours.
2. **Cost Breakdown** - Compare spending across departments.
3. **Basic Counts** - Count rows.
"""


def test_numbered_items_become_suggestions():
    suggestions = parse_analysis_suggestions(CONTENT)

    assert [item["title"] for item in suggestions] == [
        "Defect Trend Review",
        "Cost Breakdown",
        "Basic Counts",
    ]
    assert [item["metadata"]["order"] for item in suggestions] == [1, 2, 3]


def test_first_suggestion_fields():
    first = parse_analysis_suggestions(CONTENT)[0]

    assert first["description"] == 'Track "defect_rate" over time by Vendor_name. Takes about 2 hours.'
    assert first["analysis_type"] == "quality_analysis"
    assert first["complexity_level"] == "intermediate"
    assert first["estimated_time_minutes"] == 120
    assert first["required_columns"] == ["Track", "defect_rate", "Vendor_name", "Takes"]
    assert first["suggested_prompt"] == (
        'Analyze the dataset to defect trend review. Track "defect_rate" over time by Vendor_name.'
    )
    assert first["metadata"] == {"order": 1, "extracted_from_ai": True, "confidence_score": 0.8}


def test_last_suggestion_runs_to_end_of_text():
    last = parse_analysis_suggestions(CONTENT)[-1]

    assert last["description"] == "Count rows."
    assert last["analysis_type"] == "general_analysis"
    assert last["complexity_level"] == "basic"
    assert last["estimated_time_minutes"] == 10


def test_text_without_numbered_items_has_no_suggestions():
    assert parse_analysis_suggestions("Nothing to see here.") == []
    assert parse_analysis_suggestions("") == []


@pytest.mark.parametrize(
    "title, description, expected",
    [
        ("Supplier scorecard", "", "vendor_analysis"),
        ("Seasonality", "temporal patterns", "trend_analysis"),
        ("Budget check", "", "cost_analysis"),
        ("Drivers", "relationship between price and units", "correlation_analysis"),
        ("Quality errors", "vendor defects", "quality_analysis"),
        ("Overview", "summary", "general_analysis"),
    ],
)
def test_analysis_type_keywords(title, description, expected):
    assert extract_analysis_type(title, description) == expected


def test_complexity_levels():
    assert estimate_complexity("Multivariate model", "") == "advanced"
    assert estimate_complexity("Region comparison", "") == "intermediate"
    assert estimate_complexity("Row count", "") == "basic"


@pytest.mark.parametrize(
    "description, expected",
    [
        ("about 45 minutes", 45),
        ("roughly 1 hr", 60),
        ("an advanced model", 30),
        ("a side-by-side comparison", 15),
        ("quick look", 10),
    ],
)
def test_time_estimate(description, expected):
    assert extract_time_estimate(description) == expected


def test_required_columns_are_unique_and_capped():
    description = "'col_a' 'col_b' 'col_c' 'col_a' 'col_d' 'col_e' 'col_f' 'ab'"

    assert extract_required_columns(description) == ["col_a", "col_b", "col_c", "col_d", "col_e"]

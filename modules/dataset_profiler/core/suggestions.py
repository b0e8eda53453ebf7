from __future__ import annotations

import re
from typing import Any, Dict, List


MAX_REQUIRED_COLUMNS = 5
CONFIDENCE_SCORE = 0.8

SUGGESTION_RE = re.compile(
    r"(\d+)\.\s*\*\*(.*?)\*\*\s*-\s*(.*?)(?=\n\d+\.|\n\n|\Z)", re.DOTALL
)
TIME_RE = re.compile(r"(\d+)\s*(minute|hour|min|hr)s?", re.IGNORECASE)
COLUMN_RE = re.compile(r"\"([^\"]+)\"|'([^']+)'|\b([A-Z][a-z_]+(?:_[a-z]+)*)\b")

ANALYSIS_TYPES = (
    (("defect", "quality", "error"), "quality_analysis"),
    (("vendor", "supplier", "performance"), "vendor_analysis"),
    (("trend", "time", "temporal"), "trend_analysis"),
    (("cost", "financial", "budget"), "cost_analysis"),
    (("correlation", "relationship"), "correlation_analysis"),
)
ADVANCED_WORDS = ("advanced", "complex", "correlation", "multivariate")
INTERMEDIATE_WORDS = ("comparison", "trend", "analysis")


def _contains_any(text: str, words: tuple[str, ...]) -> bool:
    return any(word in text for word in words)


def extract_analysis_type(title: str, description: str) -> str:
    text = f"{title} {description}".lower()
    for words, analysis_type in ANALYSIS_TYPES:
        if _contains_any(text, words):
            return analysis_type
    return "general_analysis"


def estimate_complexity(title: str, description: str) -> str:
    text = f"{title} {description}".lower()
    if _contains_any(text, ADVANCED_WORDS):
        return "advanced"
    if _contains_any(text, INTERMEDIATE_WORDS):
        return "intermediate"
    return "basic"


def extract_time_estimate(description: str) -> int:
    match = TIME_RE.search(description)
    if match:
        value = int(match.group(1))
        unit = match.group(2).lower()
        if unit.startswith("hour") or unit.startswith("hr"):
            return value * 60
        return value

    lowered = description.lower()
    if "advanced" in lowered or "complex" in lowered:
        return 30
    if "analysis" in lowered or "comparison" in lowered:
        return 15
    return 10


def extract_required_columns(description: str) -> List[str]:
    columns: List[str] = []
    for match in COLUMN_RE.finditer(description):
        column = match.group(1) or match.group(2) or match.group(3)
        if column and len(column) > 2 and column not in columns:
            columns.append(column)
    return columns[:MAX_REQUIRED_COLUMNS]


def suggested_prompt(title: str, description: str) -> str:
    return f"Analyze the dataset to {title.lower()}. {description.split('.')[0]}."


def parse_analysis_suggestions(content: str) -> List[Dict[str, Any]]:
    """Pull ``N. **Title** - description`` items out of free-form AI text."""
    suggestions: List[Dict[str, Any]] = []
    for match in SUGGESTION_RE.finditer(content or ""):
        number, title, description = match.groups()
        suggestions.append(
            {
                "title": title.strip(),
                "description": description.strip(),
                "analysis_type": extract_analysis_type(title, description),
                "suggested_prompt": suggested_prompt(title, description),
                "complexity_level": estimate_complexity(title, description),
                "estimated_time_minutes": extract_time_estimate(description),
                "required_columns": extract_required_columns(description),
                "metadata": {
                    "order": int(number),
                    "extracted_from_ai": True,
                    "confidence_score": CONFIDENCE_SCORE,
                },
            }
        )
    return suggestions

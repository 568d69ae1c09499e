"""
Request Classifier: free text to a category hint, by table-driven pattern
scoring.

Each category's confidence is the fraction of its patterns that match. The
highest score wins; ties go to the category declared first in
CATEGORY_PATTERNS (action, query, insight, advisory). Pure and offline.
"""

import logging
import re
from typing import Dict, List, Pattern

from resource_wizard.models.classification import (
    ClassifiedRequest,
    ExtractedEntities,
    RequestCategory,
)

logger = logging.getLogger(__name__)


def _compile(*patterns: str) -> List[Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


CATEGORY_PATTERNS: Dict[RequestCategory, List[Pattern]] = {
    RequestCategory.ACTION: _compile(
        r"\b(add|remove|move|assign|unassign|allocate|delete)\b",
        r"\b(\d+)\s*h(ours?)?\b",
    ),
    RequestCategory.QUERY: _compile(
        r"\b(show|display|list|get|what(?:'s| is|'re| are))\b",
        r"\bwho(?:'s| is)\s+(on|available|working|assigned)\b",
        r"\bhow\s+many\b",
    ),
    RequestCategory.INSIGHT: _compile(
        r"\bhow(?:'s| is)\s+(?:the\s+)?team\b",
        r"\b(overview|summary|analysis|breakdown)\b",
        r"\b(looking|doing|going)\b.*\?$",
        r"\bany\s+(issues?|problems?|concerns?|risks?)\b",
    ),
    RequestCategory.ADVISORY: _compile(
        r"\bshould\s+(?:I|we)\b",
        r"\bwould\s+(?:it|you)\s+recommend\b",
        r"\bgood\s+idea\b",
        r"\bmake\s+sense\b",
        r"\bwhat\s+do\s+you\s+think\b",
    ),
}

TIMEFRAME_PATTERN = re.compile(r"\b(this|next)\s+week\b", re.IGNORECASE)
HOURS_PATTERN = re.compile(r"\b(\d+(?:\.\d+)?)\s*h(?:ours?)?\b", re.IGNORECASE)


def score_patterns(text: str, patterns: List[Pattern]) -> float:
    if not patterns:
        return 0.0
    matched = sum(1 for p in patterns if p.search(text))
    return matched / len(patterns)


def extract_entities(text: str) -> ExtractedEntities:
    """Timeframe phrase and hour quantity. Users and projects are left to the agent."""
    time_match = TIMEFRAME_PATTERN.search(text)
    hours_match = HOURS_PATTERN.search(text)
    return ExtractedEntities(
        timeframe=time_match.group(0).lower() if time_match else None,
        hours=float(hours_match.group(1)) if hours_match else None,
    )


def classify(text: str) -> ClassifiedRequest:
    """
    Classify a request. With no pattern matching at all, the result is
    ``action`` with confidence 0.
    """
    best_category = None
    best_score = -1.0
    for category, patterns in CATEGORY_PATTERNS.items():
        score = score_patterns(text, patterns)
        # Strictly greater: earlier categories win ties
        if score > best_score:
            best_category, best_score = category, score

    result = ClassifiedRequest(
        category=best_category,
        confidence=best_score,
        original_text=text,
        extracted_entities=extract_entities(text),
    )
    logger.debug(
        "Classified request as %s (%.2f)", result.category.value, result.confidence
    )
    return result

"""System category estimation.

Scores every system category against the requirement text with keyword,
name and description matches and picks the best one. When nothing matches,
the default (CRM) category is used, optionally refined by the LLM.
"""

import re
from typing import Dict, Any, Optional, List, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from config.settings import settings
from config.errors import CategorizationError
from models.db import SystemCategory
from models.schemas import CategoryResult
from services.database import session_scope

logger = structlog.get_logger()

NAME_WEIGHT = 2
NORMALIZATION_EXTRA = 3
MIN_CONFIDENCE = 0.1
DEFAULT_CATEGORY_MARKERS = ("顧客管理",)
DESCRIPTION_SEPARATORS = re.compile(r"[、,]")

CATEGORY_SELECTION_PROMPT = """You classify software project requirements into system categories.
Pick the single best matching category from the list below.

Categories:
{categories}

Respond with JSON: {{"category_id": "<id from the list>", "confidence": <number between 0 and 1>}}"""


def _matches(pattern: str, text: str) -> bool:
    """Case-insensitive regex search; invalid patterns are matched literally."""
    try:
        return re.search(pattern, text, re.IGNORECASE) is not None
    except re.error:
        return re.search(re.escape(pattern), text, re.IGNORECASE) is not None


def score_category(description: str, category: SystemCategory) -> Dict[str, Any]:
    """Score one category against the requirement text."""
    keywords = [kw for kw in (category.keywords or []) if isinstance(kw, str)]
    match_count = 0
    matched: List[str] = []

    for keyword in keywords:
        if _matches(keyword, description):
            match_count += 1
            matched.append(keyword)

    if _matches(category.name, description):
        match_count += NAME_WEIGHT
        matched.append(category.name)

    if category.description:
        first_segment = DESCRIPTION_SEPARATORS.split(category.description)[0]
        if first_segment and _matches(first_segment, description):
            match_count += 1

    confidence = min(match_count / (len(keywords) + NORMALIZATION_EXTRA), 1.0)
    return {
        "category": category,
        "confidence": confidence,
        "keywords": matched,
        "match_count": match_count,
    }


def find_default_category(
    categories: Sequence[SystemCategory],
    marker: Optional[str] = None,
) -> SystemCategory:
    markers = (marker or settings.default_category_marker,) + DEFAULT_CATEGORY_MARKERS
    for category in categories:
        if any(m and m in category.name for m in markers):
            return category
    return categories[0]


def estimate_category(
    description: str,
    categories: Sequence[SystemCategory],
    default_marker: Optional[str] = None,
) -> CategoryResult:
    """Pick the best matching category for the requirement text.

    Raises:
        CategorizationError: If there are no categories to choose from.
    """
    if not categories:
        raise CategorizationError("No system categories are registered")

    # sorted() is stable: ties keep table order
    results = sorted(
        (score_category(description, category) for category in categories),
        key=lambda r: r["confidence"],
        reverse=True,
    )
    best = results[0]

    if best["confidence"] < MIN_CONFIDENCE and best["match_count"] == 0:
        default = find_default_category(categories, default_marker)
        logger.info("category_defaulted", category_id=default.id, category_name=default.name)
        return CategoryResult(
            category_id=default.id,
            category_name=default.name,
            confidence=MIN_CONFIDENCE,
            keywords=[],
            is_default=True,
        )

    category = best["category"]
    logger.info(
        "category_estimated",
        category_id=category.id,
        category_name=category.name,
        confidence=best["confidence"],
        matched=len(best["keywords"]),
    )
    return CategoryResult(
        category_id=category.id,
        category_name=category.name,
        confidence=best["confidence"],
        keywords=best["keywords"],
    )


def is_default_result(result: CategoryResult) -> bool:
    return result.is_default


async def refine_with_llm(
    llm_service,
    description: str,
    categories: Sequence[SystemCategory],
    fallback: CategoryResult,
) -> CategoryResult:
    """Ask the LLM to choose a category; keep ``fallback`` on any bad answer."""
    listing = "\n".join(
        f"- id: {c.id} | name: {c.name} | description: {c.description or ''}" for c in categories
    )
    try:
        result = await llm_service.generate_json(
            CATEGORY_SELECTION_PROMPT.format(categories=listing),
            description,
        )
    except Exception as e:
        logger.warning("llm_categorization_failed", error=str(e))
        return fallback

    content = result.get("content")
    if not isinstance(content, dict):
        return fallback

    by_id = {c.id: c for c in categories}
    chosen = by_id.get(content.get("category_id"))
    if chosen is None:
        logger.warning("llm_categorization_invalid", category_id=content.get("category_id"))
        return fallback

    try:
        confidence = float(content.get("confidence", MIN_CONFIDENCE))
    except (TypeError, ValueError):
        confidence = MIN_CONFIDENCE

    logger.info("llm_categorization_selected", category_id=chosen.id, confidence=confidence)
    return CategoryResult(
        category_id=chosen.id,
        category_name=chosen.name,
        confidence=min(max(confidence, MIN_CONFIDENCE), 1.0),
        keywords=[],
    )


def load_categories(session_factory: sessionmaker) -> List[SystemCategory]:
    """All system categories in table order."""
    with session_scope(session_factory) as session:
        stmt = select(SystemCategory).order_by(SystemCategory.created_at, SystemCategory.id)
        return list(session.scalars(stmt))

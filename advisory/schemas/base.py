"""
Common enums and coercion helpers shared by the advisory schemas.

LLM-derived values arrive loosely typed (None, a bare string where a list was
asked for, "85分" where a number was asked for). The BeforeValidator helpers
below normalise them so the report models can never hold a null field.
"""

import re
from enum import Enum
from typing import Annotated, Any, List

from pydantic import BeforeValidator


class Priority(str, Enum):
    """Recommendation priority."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationCategory(str, Enum):
    """Recommendation category."""
    MARKET = "market"
    TECHNOLOGY = "technology"
    PRODUCT = "product"
    STRATEGY = "strategy"


class ApiStyle(str, Enum):
    """Chat-completion envelope family spoken by a provider."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    LOCAL = "local"


def _coerce_to_list(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [v] if v.strip() else []
    if isinstance(v, (list, tuple)):
        return [str(x).strip() for x in v if x is not None and str(x).strip()]
    return [str(v)]


def _coerce_to_str(v: Any) -> str:
    return "" if v is None else str(v)


def _coerce_to_score(v: Any) -> int:
    """Pull the first number out of a score and clamp it to [0, 100]."""
    if v is None or isinstance(v, bool):
        return 0
    if isinstance(v, (int, float)):
        return max(0, min(100, int(round(v))))
    match = re.search(r"\d+(?:\.\d+)?", str(v))
    if not match:
        return 0
    return max(0, min(100, int(round(float(match.group())))))


StrList = Annotated[List[str], BeforeValidator(_coerce_to_list)]
SafeStr = Annotated[str, BeforeValidator(_coerce_to_str)]
Score = Annotated[int, BeforeValidator(_coerce_to_score)]

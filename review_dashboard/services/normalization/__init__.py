"""
Review normalization and aggregation.
"""

from review_dashboard.services.normalization.normalizer import (
    ANONYMOUS_AUTHOR,
    NormalizationContext,
    NormalizationResult,
    ReviewNormalizer,
    derive_rating,
    normalize,
    synthesize_external_id,
)
from review_dashboard.services.normalization.stats import calculate_review_stats

__all__ = [
    "ANONYMOUS_AUTHOR",
    "NormalizationContext",
    "NormalizationResult",
    "ReviewNormalizer",
    "derive_rating",
    "normalize",
    "synthesize_external_id",
    "calculate_review_stats",
]

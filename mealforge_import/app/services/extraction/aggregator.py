"""Confidence-weighted, field-by-field merge of per-family extraction results."""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from mealforge_import.app.services.extraction.constants import (
    FAMILY_WEIGHTS,
    FIELD_DEFAULTS,
    FIELD_WEIGHTS,
    MANUAL_REVIEW_THRESHOLD,
)
from mealforge_import.app.services.extraction.models import (
    AggregationResult,
    ExtractionMethod,
    ExtractionResult,
    FieldConfidence,
    RecipeRecord,
)

logger = logging.getLogger(__name__)

FIELD_LABELS = {
    "image_url": "image",
    "prep_time_minutes": "prep time",
}
UNTRACKED_FIELDS = ("cook_time_minutes", "difficulty", "cuisine", "tags", "source_url")


def has_value(value: Any) -> bool:
    if value is None or value == "" or value == []:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value > 0
    return True


class MultiSourceAggregator:
    """Pick each field from the family with the highest weighted score.

    score = result confidence x family weight x field weight. The reported
    field confidence is that score divided by the best possible weight for the
    field (the heaviest family), so it stays in [0, 1] and never drops when a
    contributing family's confidence rises.
    """

    def __init__(
        self,
        family_weights: Optional[Mapping[ExtractionMethod, float]] = None,
        field_weights: Optional[Mapping[str, float]] = None,
    ):
        self.family_weights = dict(family_weights or FAMILY_WEIGHTS)
        self.field_weights = dict(field_weights or FIELD_WEIGHTS)
        # Heaviest family first; ties on score keep the earlier entry.
        self._family_order = sorted(self.family_weights, key=lambda f: self.family_weights[f], reverse=True)
        self._max_family_weight = max(self.family_weights.values())

    def _ordered(self, results: Mapping[ExtractionMethod, ExtractionResult]) -> List[Tuple[ExtractionMethod, ExtractionResult]]:
        return [(f, results[f]) for f in self._family_order if f in results and results[f].data is not None]

    def score(self, family: ExtractionMethod, result: ExtractionResult, field: str) -> float:
        return result.confidence * self.family_weights.get(family, 0.0) * self.field_weights[field]

    def choose_field(
        self,
        field: str,
        candidates: List[Tuple[ExtractionMethod, ExtractionResult]],
        fallback: Optional[RecipeRecord] = None,
    ) -> FieldConfidence:
        best: Optional[Tuple[float, ExtractionMethod, ExtractionResult]] = None
        for family, result in candidates:
            if not has_value(getattr(result.data, field)):
                continue
            score = self.score(family, result, field)
            if best is None or score > best[0]:
                best = (score, family, result)

        if best is None:
            if fallback is not None and has_value(getattr(fallback, field)):
                value = getattr(fallback, field)
            else:
                value = FIELD_DEFAULTS[field]
            if isinstance(value, list):
                value = list(value)
            return FieldConfidence(
                field=field,
                value=value,
                confidence=0.0,
                source_family=ExtractionMethod.FALLBACK,
                method="default",
            )

        score, family, result = best
        normalizer = self._max_family_weight * self.field_weights[field]
        return FieldConfidence(
            field=field,
            value=getattr(result.data, field),
            confidence=min(score / normalizer, 1.0) if normalizer else 0.0,
            source_family=family,
            method=result.provider_name,
        )

    def aggregate(
        self,
        family_results: Mapping[ExtractionMethod, ExtractionResult],
        fallback: Optional[RecipeRecord] = None,
    ) -> AggregationResult:
        candidates = self._ordered(family_results)
        fields: Dict[str, FieldConfidence] = {
            field: self.choose_field(field, candidates, fallback) for field in self.field_weights
        }

        values = {field: fc.value for field, fc in fields.items()}
        by_strength = sorted(
            candidates,
            key=lambda item: item[1].confidence * self.family_weights.get(item[0], 0.0),
            reverse=True,
        )
        for name in UNTRACKED_FIELDS:
            for _, result in by_strength:
                value = getattr(result.data, name)
                if has_value(value):
                    values[name] = value
                    break
            else:
                if fallback is not None and has_value(getattr(fallback, name)):
                    values[name] = getattr(fallback, name)
        record = RecipeRecord(**values)

        total_weight = sum(self.field_weights.values())
        confidence = (
            sum(self.field_weights[f] * fc.confidence for f, fc in fields.items()) / total_weight
            if total_weight
            else 0.0
        )
        contributing = sorted(
            {fc.source_family for fc in fields.values() if fc.source_family != ExtractionMethod.FALLBACK},
            key=self._family_order.index,
        )
        recommendations = self.recommendations(fields, contributing)
        logger.info(
            "Aggregated %d families (%s): confidence=%.2f, recommendations=%d",
            len(contributing),
            ", ".join(f.value for f in contributing) or "none",
            confidence,
            len(recommendations),
        )
        return AggregationResult(
            record=record,
            confidence=round(confidence, 4),
            recommendations=recommendations,
            field_confidences=fields,
            contributing_families=contributing,
        )

    @staticmethod
    def recommendations(fields: Dict[str, FieldConfidence], contributing: List[ExtractionMethod]) -> List[str]:
        notes: List[str] = []
        for field, fc in fields.items():
            if fc.confidence < MANUAL_REVIEW_THRESHOLD:
                label = FIELD_LABELS.get(field, field)
                notes.append(f"Consider manual review of {label} (confidence: {fc.confidence:.0%})")
        if len(contributing) < 2:
            notes.append("Try enabling additional parsing methods for better accuracy")
        if "ingredients" in fields and fields["ingredients"].source_family == ExtractionMethod.FALLBACK:
            notes.append("No ingredients found - consider manual entry or different source")
        if "instructions" in fields and fields["instructions"].source_family == ExtractionMethod.FALLBACK:
            notes.append("No instructions found - consider manual entry or different source")
        return notes

"""Structural checks and comparison against known-good reference recipes."""

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from mealforge_import.app.services.extraction.models import (
    ParsedIngredient,
    RecipeRecord,
    ValidationIssue,
    ValidationResult,
)

logger = logging.getLogger(__name__)

QUANTITY_TOLERANCE = 0.01


class ReferenceRecipe(BaseModel):
    """A real-world recipe with a hand-checked expected record."""

    name: str
    url_fragment: str
    record: RecipeRecord
    key_ingredients: List[str] = Field(default_factory=list)
    # ingredient keyword -> expected quantity / expected full name
    expected_quantities: Dict[str, float] = Field(default_factory=dict)
    expected_names: Dict[str, str] = Field(default_factory=dict)
    min_instructions: int = 1


def _ing(quantity: float, unit: str, name: str, notes: str = "") -> ParsedIngredient:
    return ParsedIngredient(quantity=quantity, unit=unit, name=name, notes=notes)


BUTTERFINGER_BARS = ReferenceRecipe(
    name="Butterfinger Bars",
    url_fragment="butterfinger-bars",
    record=RecipeRecord(
        title="Butterfinger Bars",
        description=(
            "Everyone will want to 'lay a finger' on these Butterfinger Bars! They are too good "
            "not to share, and you will prefer these bars to the candy bar."
        ),
        prep_time_minutes=15,
        cook_time_minutes=25,
        servings=12,
        difficulty="medium",
        cuisine="American",
        source_url="https://iambaker.net/butterfinger-bars/",
        instructions=[
            "Preheat oven to 350°F (175°C). Line a 9x13 inch baking pan with parchment paper.",
            "In a large bowl, cream together butter and sugar until light and fluffy.",
            "Add eggs one at a time, beating well after each addition.",
            "Stir in vanilla extract.",
            "In a separate bowl, whisk together flour, baking soda, and salt.",
            "Gradually add dry ingredients to wet ingredients, mixing until just combined.",
            "Fold in chopped butterfingers.",
            "Spread batter evenly into prepared pan.",
            "Bake for 25-30 minutes or until a toothpick inserted in center comes out clean.",
            "Let cool completely before cutting into bars.",
        ],
        ingredients=[
            _ing(1, "cup", "unsalted butter", "2 sticks, room temperature"),
            _ing(1.5, "cup", "granulated sugar"),
            _ing(2, "large", "eggs", "room temperature"),
            _ing(1, "teaspoon", "vanilla extract"),
            _ing(2.5, "cup", "all-purpose flour"),
            _ing(1, "teaspoon", "baking soda"),
            _ing(0.5, "teaspoon", "salt"),
            _ing(2, "cup", "butterfingers", "chopped"),
        ],
    ),
    key_ingredients=["butter", "sugar", "eggs", "flour", "butterfingers"],
    expected_quantities={"sugar": 1.5},
    expected_names={"sugar": "granulated sugar"},
    min_instructions=8,
)

DEFAULT_REFERENCES = [BUTTERFINGER_BARS]


class RecipeValidator:
    def __init__(self, references: Optional[Sequence[ReferenceRecipe]] = None):
        self.references = list(DEFAULT_REFERENCES if references is None else references)

    def reference_for(self, url: Optional[str]) -> Optional[ReferenceRecipe]:
        if not url:
            return None
        lowered = url.lower()
        for reference in self.references:
            if reference.url_fragment in lowered:
                return reference
        return None

    def validate(self, record: RecipeRecord, url: Optional[str] = None) -> ValidationResult:
        issues: List[ValidationIssue] = []
        suggestions: List[str] = []
        self._structural(record, issues, suggestions)

        reference = self.reference_for(url or record.source_url)
        if reference is not None:
            self._compare(record, reference, issues, suggestions)

        is_valid = not any(issue.severity == "error" for issue in issues)
        logger.info(
            "Validation for %s: valid=%s, issues=%d, reference=%s",
            url or record.source_url,
            is_valid,
            len(issues),
            reference.name if reference else None,
        )
        return ValidationResult(
            is_valid=is_valid,
            issues=issues,
            suggestions=suggestions,
            reference=reference.name if reference else None,
        )

    @staticmethod
    def _structural(record: RecipeRecord, issues: List[ValidationIssue], suggestions: List[str]) -> None:
        title = (record.title or "").strip()
        if len(title) < 3:
            issues.append(
                ValidationIssue(
                    field="title",
                    severity="error",
                    expected="At least 3 characters",
                    actual=title,
                    message="Title is missing or too short" if title else "Title is missing",
                )
            )
            suggestions.append("Recipe should have a descriptive title")
        if not record.ingredients:
            issues.append(
                ValidationIssue(
                    field="ingredients",
                    severity="error",
                    expected="At least 1 ingredient",
                    actual="0 ingredients",
                    message="Recipe has no ingredients",
                )
            )
            suggestions.append("Recipe should have ingredients")
        if not record.instructions:
            issues.append(
                ValidationIssue(
                    field="instructions",
                    severity="error",
                    expected="At least 1 instruction",
                    actual="0 instructions",
                    message="Recipe has no instructions",
                )
            )
            suggestions.append("Recipe should have cooking instructions")

    @staticmethod
    def _compare(
        record: RecipeRecord,
        reference: ReferenceRecipe,
        issues: List[ValidationIssue],
        suggestions: List[str],
    ) -> None:
        expected = reference.record
        if record.title != expected.title:
            issues.append(
                ValidationIssue(
                    field="title",
                    severity="error",
                    expected=expected.title,
                    actual=record.title,
                    message=f'Expected title "{expected.title}", got "{record.title}"',
                )
            )
            suggestions.append(f'Title should be "{expected.title}"')

        if reference.name.lower() not in (record.description or "").lower():
            issues.append(
                ValidationIssue(
                    field="description",
                    severity="warning",
                    expected=f'Contains "{reference.name}"',
                    actual=record.description,
                    message=f"Description should mention {reference.name}",
                )
            )
            suggestions.append("Description should include recipe context")

        if len(record.ingredients) != len(expected.ingredients):
            issues.append(
                ValidationIssue(
                    field="ingredients",
                    severity="error",
                    expected=f"{len(expected.ingredients)} ingredients",
                    actual=f"{len(record.ingredients)} ingredients",
                    message=f"Expected {len(expected.ingredients)} ingredients, got {len(record.ingredients)}",
                )
            )
            suggestions.append(f"Should have {len(expected.ingredients)} ingredients")

        for keyword in reference.key_ingredients:
            if not any(keyword in ing.name.lower() for ing in record.ingredients):
                issues.append(
                    ValidationIssue(
                        field="ingredients",
                        severity="error",
                        expected=f"Contains {keyword}",
                        actual="Missing",
                        message=f"Missing key ingredient: {keyword}",
                    )
                )
                suggestions.append(f"Should include {keyword}")

        for keyword, quantity in reference.expected_quantities.items():
            match = next((ing for ing in record.ingredients if keyword in ing.name.lower()), None)
            if match is not None and abs(match.quantity - quantity) > QUANTITY_TOLERANCE:
                issues.append(
                    ValidationIssue(
                        field="ingredients",
                        severity="error",
                        expected=f"{quantity:g} {keyword}",
                        actual=f"{match.quantity:g} {match.unit} {match.name}",
                        message=f"{keyword.capitalize()} quantity should be {quantity:g}",
                    )
                )
                suggestions.append(f"{keyword.capitalize()} quantity should be {quantity:g}")

        for keyword, name in reference.expected_names.items():
            match = next((ing for ing in record.ingredients if keyword in ing.name.lower()), None)
            if match is not None and match.name.lower() != name.lower():
                issues.append(
                    ValidationIssue(
                        field="ingredients",
                        severity="warning",
                        expected=name,
                        actual=match.name,
                        message=f'{keyword.capitalize()} should be "{name}"',
                    )
                )
                suggestions.append(f'{keyword.capitalize()} should be specified as "{name}"')

        if len(record.instructions) < reference.min_instructions:
            issues.append(
                ValidationIssue(
                    field="instructions",
                    severity="warning",
                    expected=f"At least {reference.min_instructions} instructions",
                    actual=f"{len(record.instructions)} instructions",
                    message="Should have detailed step-by-step instructions",
                )
            )
            suggestions.append("Instructions should be more detailed")

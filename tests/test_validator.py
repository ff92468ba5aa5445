from mealforge_import.app.services.extraction.models import ParsedIngredient, RecipeRecord
from mealforge_import.app.services.extraction.validator import BUTTERFINGER_BARS, RecipeValidator

REFERENCE_URL = "https://iambaker.net/butterfinger-bars/"


def reference_copy(**updates) -> RecipeRecord:
    return BUTTERFINGER_BARS.record.model_copy(deep=True, update=updates)


def replace_ingredient(record: RecipeRecord, index: int, **changes) -> RecipeRecord:
    ingredients = list(record.ingredients)
    ingredients[index] = ingredients[index].model_copy(update=changes)
    return record.model_copy(update={"ingredients": ingredients})


def test_empty_record_fails_structural_checks():
    result = RecipeValidator().validate(RecipeRecord(title="Ab"))
    assert not result.is_valid
    assert {issue.field for issue in result.issues} == {"title", "ingredients", "instructions"}
    assert "Recipe should have a descriptive title" in result.suggestions
    assert result.reference is None


def test_reasonable_record_without_reference_is_valid():
    record = RecipeRecord(
        title="Banana Bread",
        ingredients=[ParsedIngredient(quantity=3, unit="piece", name="bananas")],
        instructions=["Mash.", "Bake."],
    )
    result = RecipeValidator().validate(record, url="https://example.com/banana-bread")
    assert result.is_valid
    assert result.issues == []


def test_exact_reference_record_is_valid():
    result = RecipeValidator().validate(reference_copy(), url=REFERENCE_URL)
    assert result.reference == "Butterfinger Bars"
    assert result.is_valid
    assert result.issues == []


def test_reference_is_found_from_record_source_url():
    result = RecipeValidator().validate(reference_copy(title="Peanut Bars"))
    assert result.reference == "Butterfinger Bars"
    assert not result.is_valid
    assert 'Title should be "Butterfinger Bars"' in result.suggestions


def test_wrong_sugar_quantity_is_an_error():
    record = replace_ingredient(reference_copy(), 1, quantity=1.0)
    result = RecipeValidator().validate(record, url=REFERENCE_URL)
    assert not result.is_valid
    assert "Sugar quantity should be 1.5" in result.suggestions


def test_generic_sugar_name_is_only_a_warning():
    record = replace_ingredient(reference_copy(), 1, name="sugar")
    result = RecipeValidator().validate(record, url=REFERENCE_URL)
    assert result.is_valid
    assert [issue.severity for issue in result.issues] == ["warning"]
    assert 'Sugar should be specified as "granulated sugar"' in result.suggestions


def test_missing_key_ingredient_and_count():
    record = reference_copy()
    record = record.model_copy(update={"ingredients": record.ingredients[:-1]})
    result = RecipeValidator().validate(record, url=REFERENCE_URL)
    assert not result.is_valid
    assert "Should have 8 ingredients" in result.suggestions
    assert "Should include butterfingers" in result.suggestions


def test_short_instructions_and_description_are_warnings():
    record = reference_copy(instructions=["Mix.", "Bake."], description="Tasty bars.")
    result = RecipeValidator().validate(record, url=REFERENCE_URL)
    assert result.is_valid
    assert {issue.field for issue in result.issues} == {"instructions", "description"}
    assert "Instructions should be more detailed" in result.suggestions


def test_reference_matching_needs_the_url_fragment():
    validator = RecipeValidator()
    assert validator.reference_for("https://iambaker.net/Butterfinger-Bars/") is BUTTERFINGER_BARS
    assert validator.reference_for("https://example.com/peanut-bars") is None
    assert validator.reference_for(None) is None

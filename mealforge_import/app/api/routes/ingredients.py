from typing import List

from fastapi import APIRouter

from mealforge_import.app.schemas.imports import ParseIngredientsRequest
from mealforge_import.app.services.extraction.ingredient_parser import parse_ingredient
from mealforge_import.app.services.extraction.models import ParsedIngredient

router = APIRouter(prefix="/ingredients", tags=["ingredients"])


@router.post("/parse", response_model=List[ParsedIngredient])
def parse_ingredients(payload: ParseIngredientsRequest):
    return [parse_ingredient(line) for line in payload.lines if line and line.strip()]

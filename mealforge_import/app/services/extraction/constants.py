"""Static tables used across extraction: units, fractions, weights, selectors."""

from mealforge_import.app.services.extraction.models import ExtractionMethod

FRACTION_MAP = {
    "½": 0.5,
    "⅓": 0.333,
    "⅔": 0.667,
    "¼": 0.25,
    "¾": 0.75,
    "⅕": 0.2,
    "⅖": 0.4,
    "⅗": 0.6,
    "⅘": 0.8,
    "⅙": 0.167,
    "⅚": 0.833,
    "⅐": 0.143,
    "⅛": 0.125,
    "⅜": 0.375,
    "⅝": 0.625,
    "⅞": 0.875,
    "⅑": 0.111,
    "⅒": 0.1,
}
FRACTION_CHARS = "".join(FRACTION_MAP.keys())

# Decimal part -> display fraction, matched with DISPLAY_TOLERANCE.
DISPLAY_FRACTIONS = {
    0.25: "1/4",
    0.333: "1/3",
    0.5: "1/2",
    0.667: "2/3",
    0.75: "3/4",
    0.167: "1/6",
    0.833: "5/6",
    0.125: "1/8",
    0.375: "3/8",
    0.625: "5/8",
    0.875: "7/8",
}
DISPLAY_TOLERANCE = 0.01

# Lowercased token (without trailing period) -> canonical unit.
UNIT_ALIASES = {
    "tbsp": "tablespoon",
    "tbsps": "tablespoon",
    "tbs": "tablespoon",
    "tbl": "tablespoon",
    "tablespoon": "tablespoon",
    "tablespoons": "tablespoon",
    "tsp": "teaspoon",
    "tsps": "teaspoon",
    "teaspoon": "teaspoon",
    "teaspoons": "teaspoon",
    "cup": "cup",
    "cups": "cup",
    "lb": "pound",
    "lbs": "pound",
    "pound": "pound",
    "pounds": "pound",
    "oz": "ounce",
    "ozs": "ounce",
    "ounce": "ounce",
    "ounces": "ounce",
    "fl oz": "fluid ounce",
    "fluid ounce": "fluid ounce",
    "fluid ounces": "fluid ounce",
    "g": "gram",
    "gs": "gram",
    "gram": "gram",
    "grams": "gram",
    "kg": "kilogram",
    "kgs": "kilogram",
    "kilogram": "kilogram",
    "kilograms": "kilogram",
    "ml": "milliliter",
    "milliliter": "milliliter",
    "milliliters": "milliliter",
    "l": "liter",
    "liter": "liter",
    "liters": "liter",
    "pt": "pint",
    "pts": "pint",
    "pint": "pint",
    "pints": "pint",
    "qt": "quart",
    "qts": "quart",
    "quart": "quart",
    "quarts": "quart",
    "gal": "gallon",
    "gals": "gallon",
    "gallon": "gallon",
    "gallons": "gallon",
    "clove": "clove",
    "cloves": "clove",
    "can": "can",
    "cans": "can",
    "package": "package",
    "packages": "package",
    "pkg": "package",
    "stick": "stick",
    "sticks": "stick",
    "slice": "slice",
    "slices": "slice",
    "pinch": "pinch",
    "pinches": "pinch",
    "dash": "dash",
    "dashes": "dash",
    "bunch": "bunch",
    "bunches": "bunch",
    "head": "head",
    "heads": "head",
    "sprig": "sprig",
    "sprigs": "sprig",
    "piece": "piece",
    "pieces": "piece",
}

# Count/size words accepted in the unit slot and kept verbatim.
SIZE_UNITS = {"large", "medium", "small", "whole", "extra-large"}

DESCRIPTIVE_WORDS = {
    "chopped",
    "diced",
    "minced",
    "sliced",
    "grated",
    "shredded",
    "crushed",
    "crumbled",
}

FAMILY_WEIGHTS = {
    ExtractionMethod.BROWSER_AUTOMATION: 0.35,
    ExtractionMethod.AI_PARSING: 0.30,
    ExtractionMethod.PROFESSIONAL_API: 0.25,
    ExtractionMethod.HTML_SCRAPING: 0.10,
}

# Aggregated field -> weight. Keys are RecipeRecord attribute names.
FIELD_WEIGHTS = {
    "title": 0.20,
    "description": 0.15,
    "ingredients": 0.30,
    "instructions": 0.25,
    "image_url": 0.05,
    "prep_time_minutes": 0.03,
    "servings": 0.02,
}

DEFAULT_TITLE = "Imported Recipe"
FIELD_DEFAULTS = {
    "title": DEFAULT_TITLE,
    "description": "Recipe imported from URL",
    "ingredients": [],
    "instructions": ["Instructions could not be extracted. Please add them manually."],
    "image_url": None,
    "prep_time_minutes": 0,
    "servings": 0,
}

MANUAL_REVIEW_THRESHOLD = 0.5
FALLBACK_CONFIDENCE_MIN = 0.1
FALLBACK_CONFIDENCE_MAX = 0.3

TRACKING_PARAMS = {
    "ref",
    "referrer",
    "source",
    "fbclid",
    "gclid",
    "msclkid",
    "mc_cid",
    "mc_eid",
}
TRACKING_PREFIXES = ("utm_",)

PRINT_URL_PATTERNS = [
    "wprm_print",
    "print",
    "print-recipe",
    "print-friendly",
    "printable",
    "recipe/print",
    "recipes/print",
]

SCHEMA_SELECTORS = {
    "title": '[itemprop="name"]',
    "description": '[itemprop="description"]',
    "image": '[itemprop="image"]',
    "prep_time": '[itemprop="prepTime"]',
    "cook_time": '[itemprop="cookTime"]',
    "total_time": '[itemprop="totalTime"]',
    "servings": '[itemprop="recipeYield"]',
    "ingredients": '[itemprop="recipeIngredient"], [itemprop="ingredients"]',
    "instructions": '[itemprop="recipeInstructions"]',
    "cuisine": '[itemprop="recipeCuisine"]',
    "category": '[itemprop="recipeCategory"]',
}

COMMON_SELECTORS = {
    "title": ["h1.recipe-title", ".recipe-title", ".wprm-recipe-name", ".tasty-recipes-title", "h1.entry-title", "h1"],
    "description": [".recipe-description", ".wprm-recipe-summary", ".tasty-recipes-description", ".recipe-summary", 'meta[name="description"]'],
    "ingredients": [
        ".wprm-recipe-ingredient",
        ".tasty-recipes-ingredients li",
        ".recipe-ingredients li",
        ".ingredients li",
        ".ingredient-list li",
        "ul.ingredients li",
    ],
    "instructions": [
        ".wprm-recipe-instruction-text",
        ".tasty-recipes-instructions li",
        ".recipe-instructions li",
        ".instructions li",
        ".directions li",
        ".method li",
    ],
    "prep_time": [".wprm-recipe-prep_time-container", ".prep-time", ".recipe-prep-time", ".tasty-recipes-prep-time"],
    "cook_time": [".wprm-recipe-cook_time-container", ".cook-time", ".recipe-cook-time", ".tasty-recipes-cook-time"],
    "servings": [".wprm-recipe-servings", ".recipe-servings", ".servings", ".yield", ".tasty-recipes-yield"],
    "image": ['meta[property="og:image"]', ".wprm-recipe-image img", ".recipe-image img", "article img"],
}

BROWSER_WAIT_SELECTOR = '.recipe-content, .recipe-ingredients, [itemprop="recipeIngredient"]'

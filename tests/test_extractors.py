from mealforge_import.app.services.extraction.extractors import (
    extract_recipe_from_markup,
    extract_recipe_from_microdata,
    extract_recipe_from_schema_org,
    extract_recipe_heuristic,
)
from mealforge_import.app.services.extraction.parsing_utils import (
    coerce_keywords,
    extract_instruction_text,
    parse_iso8601_duration,
    parse_minutes,
    parse_servings,
    parse_servings_from_text,
)


def test_extract_recipe_from_schema_org():
    html = """
    <html>
      <head>
        <script type="application/ld+json">
        {
          "@context": "https://schema.org",
          "@type": "Recipe",
          "name": "Test Recipe",
          "recipeIngredient": ["1 cup flour", "2 eggs"],
          "recipeInstructions": ["Mix", "Bake"],
          "totalTime": "PT30M",
          "recipeYield": "4",
          "image": {"url": "/img/test.jpg"}
        }
        </script>
      </head>
    </html>
    """

    parsed = extract_recipe_from_schema_org(html, "https://example.com/test")
    assert parsed is not None
    assert parsed.title == "Test Recipe"
    assert parsed.prep_time_minutes == 30
    assert parsed.servings == 4
    assert parsed.image_url == "https://example.com/img/test.jpg"
    assert [i.name for i in parsed.ingredients] == ["flour", "eggs"]
    assert parsed.instructions == ["Mix", "Bake"]


def test_schema_org_reads_graph_and_sections():
    html = """
    <script type="application/ld+json">
    {"@context": "https://schema.org", "@graph": [
      {"@type": "WebPage", "name": "Not a recipe"},
      {"@type": ["Recipe"], "name": "Graph Stew",
       "recipeIngredient": ["1 lb beef"],
       "recipeInstructions": [
         {"@type": "HowToSection", "name": "Prep", "itemListElement": [
           {"@type": "HowToStep", "text": "Brown the beef."},
           {"@type": "HowToStep", "text": "Simmer."}
         ]}
       ],
       "prepTime": "PT15M", "cookTime": "PT1H30M",
       "keywords": "stew, beef, a very long seo keyword phrase", "recipeCuisine": "Irish"}
    ]}
    </script>
    """
    parsed = extract_recipe_from_schema_org(html, "https://example.com/stew")
    assert parsed.title == "Graph Stew"
    assert parsed.instructions == ["Brown the beef.", "Simmer."]
    assert parsed.prep_time_minutes == 15
    assert parsed.cook_time_minutes == 90
    assert parsed.cuisine == "Irish"
    assert parsed.tags == ["stew", "beef", "Irish"]


def test_schema_org_ignores_broken_blocks():
    html = """
    <script type="application/ld+json">{not json</script>
    <script type="application/ld+json">{"@type": "Organization", "name": "Site"}</script>
    """
    assert extract_recipe_from_schema_org(html, "https://example.com") is None


def test_extract_recipe_from_microdata():
    html = """
    <div itemscope itemtype="https://schema.org/Recipe">
      <h1 itemprop="name">Microdata Muffins</h1>
      <img itemprop="image" src="/muffins.jpg">
      <time itemprop="prepTime" datetime="PT10M">10 minutes</time>
      <span itemprop="recipeYield">12 muffins</span>
      <ul>
        <li itemprop="recipeIngredient">2 cups flour</li>
        <li itemprop="recipeIngredient">1 cup blueberries</li>
      </ul>
      <div itemprop="recipeInstructions">
        <ol><li>Mix everything.</li><li>Bake 20 minutes.</li></ol>
      </div>
    </div>
    """
    parsed = extract_recipe_from_microdata(html, "https://example.com/muffins")
    assert parsed.title == "Microdata Muffins"
    assert parsed.image_url == "https://example.com/muffins.jpg"
    assert parsed.prep_time_minutes == 10
    assert parsed.servings == 12
    assert [i.name for i in parsed.ingredients] == ["flour", "blueberries"]
    assert parsed.instructions == ["Mix everything.", "Bake 20 minutes."]


def test_extract_recipe_heuristic():
    html = """
    <html>
      <body>
        <h1>Heuristic Soup</h1>
        <article>
          <ul>
            <li>1 cup broth</li>
            <li>2 tsp salt</li>
          </ul>
          <h2>Directions</h2>
          <ol>
            <li>Heat the broth.</li>
            <li>Add salt.</li>
          </ol>
        </article>
      </body>
    </html>
    """
    parsed = extract_recipe_heuristic(html, "https://example.com/soup")
    assert parsed is not None
    assert parsed.title == "Heuristic Soup"
    assert len(parsed.ingredients) == 2
    assert parsed.instructions[0].startswith("Heat")


def test_markup_extraction_fills_gaps_from_later_extractors():
    html = """
    <html>
      <head>
        <meta property="og:image" content="https://cdn.example.com/cake.jpg">
        <script type="application/ld+json">
        {"@type": "Recipe", "name": "Cake", "recipeIngredient": ["2 cups flour", "1 cup sugar"],
         "recipeInstructions": "Mix.\\nBake."}
        </script>
      </head>
      <body><h1>Cake</h1></body>
    </html>
    """
    parsed = extract_recipe_from_markup(html, "https://example.com/cake")
    assert parsed.title == "Cake"
    assert parsed.instructions == ["Mix.", "Bake."]
    assert parsed.image_url == "https://cdn.example.com/cake.jpg"


def test_markup_extraction_returns_none_for_empty_page():
    assert extract_recipe_from_markup("<html><body></body></html>", "https://example.com") is None


def test_duration_parsing():
    assert parse_iso8601_duration("PT1H30M") == 90
    assert parse_iso8601_duration("P0DT0H45M") == 45
    assert parse_iso8601_duration("nonsense") is None
    assert parse_minutes("1 hr 20 mins") == 80
    assert parse_minutes("25") == 25
    assert parse_minutes(12) == 12
    assert parse_minutes("") is None


def test_oversized_numbers_do_not_overflow():
    assert parse_minutes("9" * 400 + " hours") is None
    assert parse_minutes("9" * 400 + " mins") is None
    assert parse_minutes(float("inf")) is None
    assert parse_minutes(float("nan")) is None
    assert parse_minutes("9" * 5000) is None
    assert parse_iso8601_duration("PT" + "9" * 5000 + "M") is None
    assert parse_servings("9" * 5000) is None
    assert parse_servings(float("inf")) is None
    assert parse_servings_from_text("Serves " + "9" * 5000) is None


def test_instruction_text_from_string_block():
    assert extract_instruction_text("Step one\n\nStep two") == ["Step one", "Step two"]


def test_coerce_keywords_dedupes_case_insensitively():
    assert coerce_keywords(["Dessert", "dessert, Easy", ["Bars"]]) == ["Dessert", "Easy", "Bars"]

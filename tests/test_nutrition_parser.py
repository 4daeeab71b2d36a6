"""Tests for nutrition label extraction."""

from pingodoce.nutrition import (
    NutritionFacts,
    has_nutrition_data,
    html_to_text,
    parse_nutrition,
)

FULL_LABEL = (
    "<p>Pão de forma integral.</p>"
    "<p>Informação Nutricional por 100g:<br/>"
    "Energia: 1046 kj / 248 kcal<br>"
    "Lípidos: 3,2 g<br>"
    "Dos quais saturados: 0,6 g<br>"
    "Hidratos de carbono: 41 g<br>"
    "Dos quais açúcares: 4,1 g<br>"
    "Fibra: 6,8 g<br>"
    "Proteínas: 10 g<br>"
    "Sal: 0,75 g</p>"
    "<p>Ingredientes: Farinha de trigo integral, água, sal, levedura.</p>"
    "<p>Alergénios: Glúten</p>"
)


def test_parse_example_label():
    """The short label from the product page parses."""
    facts = parse_nutrition(
        "Energia: 435 kj / 103 kcal<br/>Lípidos: 2,5 g<br>Proteínas: 6,3 g"
    )
    assert facts.energy_kj == 435.0
    assert facts.energy_kcal == 103.0
    assert facts.fat == 2.5
    assert facts.protein == 6.3
    assert facts.sugars is None


def test_parse_full_label():
    """Every nutrient and the ingredient list are extracted."""
    facts = parse_nutrition(FULL_LABEL)
    assert facts.energy_kj == 1046.0
    assert facts.energy_kcal == 248.0
    assert facts.fat == 3.2
    assert facts.saturated_fat == 0.6
    assert facts.carbohydrates == 41.0
    assert facts.sugars == 4.1
    assert facts.fiber == 6.8
    assert facts.protein == 10.0
    assert facts.salt == 0.75
    assert facts.ingredients == "Farinha de trigo integral, água, sal, levedura"


def test_ingredients_until_end_of_text():
    """Without a terminator the ingredient list runs to the end."""
    facts = parse_nutrition("Ingredientes: leite, fermentos lácteos.")
    assert facts.ingredients == "leite, fermentos lácteos"


def test_ingredients_stop_at_storage_note():
    """'Conservar' ends the ingredient section."""
    facts = parse_nutrition("Ingredientes: tomate, sal. Conservar no frio.")
    assert facts.ingredients == "tomate, sal"


def test_empty_input():
    """None and empty strings give an empty record."""
    assert parse_nutrition(None) == NutritionFacts()
    assert parse_nutrition("") == NutritionFacts()


def test_unrelated_text():
    """Text without a label gives all None."""
    facts = parse_nutrition("<p>Produto fresco da época.</p>")
    assert facts == NutritionFacts()
    assert not facts.is_storable


def test_is_storable():
    """Energy or protein makes a record worth saving."""
    assert NutritionFacts(energy_kcal=100).is_storable
    assert NutritionFacts(protein=3.0).is_storable
    assert not NutritionFacts(fat=1.0).is_storable


def test_html_to_text_decodes_entities():
    """Tags are stripped and entities decoded."""
    assert html_to_text("<b>Pr&oacute;teinas</b>&nbsp;<br/>x") == "Próteinas x"


def test_has_nutrition_data():
    """Any of the label markers counts."""
    assert has_nutrition_data("Informação Nutricional")
    assert has_nutrition_data("Energia: 100 kj")
    assert has_nutrition_data("<p>120 kcal</p>")
    assert not has_nutrition_data("Produto fresco")
    assert not has_nutrition_data(None)


def test_to_dict():
    """to_dict returns every field."""
    data = parse_nutrition("Proteínas: 6,3 g").to_dict()
    assert data["protein"] == 6.3
    assert "ingredients" in data

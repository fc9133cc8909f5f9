"""Tests for the tokenizer and the natural-language query parser."""

import pytest

from shopsense.recommender.models import ParsedQuery, SortBy
from shopsense.recommender.query_parser import (
    BOUND_RULES,
    RANGE_RULE,
    SORT_RULES,
    extract_price_bounds,
    parse_query,
)
from shopsense.recommender.tokenize import tokenize


# ===== Tokenizer Tests =====


def test_tokenize_lowercases_and_strips_punctuation():
    """Test basic tokenization."""
    assert tokenize("Hello World! This is a TEST.") == [
        "hello", "world", "this", "is", "a", "test"
    ]
    assert tokenize("Hello, world! How are you?") == ["hello", "world", "how", "are", "you"]


def test_tokenize_splits_on_punctuation_inside_words():
    """Test that punctuation inside a word becomes a separator."""
    assert tokenize("Wi-Fi 6E  router") == ["wi", "fi", "6e", "router"]


def test_tokenize_empty_input():
    """Test that empty and None input give no tokens."""
    assert tokenize("") == []
    assert tokenize(None) == []
    assert tokenize("  !!! ") == []


# ===== Price Extraction Tests =====


@pytest.mark.parametrize(
    "query",
    ["between 50 and 150", "50-150", "from 50 to 150", "$50 - $150", "50~150"],
)
def test_range_forms_are_equivalent(query):
    """Test that every range spelling gives the same bounds."""
    parsed = parse_query(query)

    assert parsed.price_min == 50
    assert parsed.price_max == 150
    assert parsed.text is None
    assert parsed.keywords == []


def test_reversed_range_is_ordered():
    """Test that a range written high-to-low is normalized."""
    parsed = parse_query("between 150 and 50")

    assert parsed.price_min == 50
    assert parsed.price_max == 150


def test_upper_bound_extraction():
    """Test "under N" with residual keywords."""
    parsed = parse_query("bluetooth headphones under 100")

    assert parsed.price_max == 100
    assert parsed.price_min is None
    assert set(parsed.text.split()) == {"bluetooth", "headphones"}
    assert parsed.keywords == ["bluetooth", "headphones"]


def test_upper_bound_with_dollar_sign():
    """Test that a dollar sign before the number is accepted."""
    parsed = parse_query("Headphones under $80")

    assert parsed.price_max == 80
    assert parsed.text == "headphones"


def test_lower_bound_extraction():
    """Test "over N"."""
    parsed = parse_query("keyboard over 30")

    assert parsed.price_min == 30
    assert parsed.price_max is None
    assert parsed.text == "keyboard"


def test_maximum_keyword():
    """Test that "maximum" is matched as a whole word."""
    parsed = parse_query("monitor maximum 300")

    assert parsed.price_max == 300
    assert parsed.text == "monitor"


def test_independent_bounds_both_apply():
    """Test that min and max bounds are extracted independently."""
    parsed = parse_query("mouse min 10 max 40")

    assert parsed.price_min == 10
    assert parsed.price_max == 40
    assert parsed.text == "mouse"


def test_range_short_circuits_independent_bounds():
    """Test that a range match skips the bound rules entirely."""
    parsed = parse_query("between 10 and 50, under 30")

    assert parsed.price_min == 10
    assert parsed.price_max == 50
    assert parsed.text == "under 30"


def test_extract_price_bounds_reports_fired_rules():
    """Test which rules fire for a query."""
    _, _, _, fired = extract_price_bounds("speaker over 20 under 90")
    assert fired == ["upper_bound", "lower_bound"]

    _, _, _, fired = extract_price_bounds("speaker 20-90")
    assert fired == ["range"]


def test_individual_rules():
    """Test each rule in isolation."""
    range_match = RANGE_RULE.apply("desk lamp 40 to 25")
    assert range_match is not None
    assert (range_match.price_min, range_match.price_max) == (25, 40)

    upper, lower = BOUND_RULES
    assert upper.apply("less than 70 dollars").price_max == 70
    assert upper.apply("no numbers here") is None
    assert lower.apply("more than 15").price_min == 15

    rating_rule, price_rule = SORT_RULES
    assert rating_rule.matches("top rated chairs")
    assert not rating_rule.matches("rated chairs")
    assert price_rule.matches("budget monitor")
    assert price_rule.matches("lowest price webcam")


# ===== Sort Intent Tests =====


def test_rating_sort_intent():
    """Test "best rated" sets rating sort and strips the words."""
    parsed = parse_query("best rated headphones")

    assert parsed.sort_by == SortBy.RATING
    assert parsed.text == "headphones"


def test_price_sort_intent():
    """Test "cheapest" sets price sort and strips the word."""
    parsed = parse_query("cheapest mouse")

    assert parsed.sort_by == SortBy.PRICE
    assert parsed.text == "mouse"


def test_sort_words_inside_other_words_are_kept():
    """Test that "top" inside "laptop" is not treated as sort intent."""
    parsed = parse_query("laptop stand")

    assert parsed.sort_by == SortBy.RELEVANCE
    assert parsed.text == "laptop stand"


def test_sort_intent_only_query_has_no_text():
    """Test a query that is only sort intent."""
    parsed = parse_query("Top Rating")

    assert parsed.sort_by == SortBy.RATING
    assert parsed.text is None


def test_sort_and_price_combined():
    """Test sort intent together with a price bound."""
    parsed = parse_query("budget keyboard under 50")

    assert parsed.sort_by == SortBy.PRICE
    assert parsed.price_max == 50
    assert parsed.text == "keyboard"


# ===== Keyword Tests =====


def test_short_keywords_are_dropped():
    """Test that keywords of two characters or fewer are dropped."""
    parsed = parse_query("USB-C hub for tv")

    assert parsed.text == "usb c hub for tv"
    assert parsed.keywords == ["usb", "hub", "for"]


def test_empty_query():
    """Test that empty input gives the default query."""
    assert parse_query("") == ParsedQuery()
    assert parse_query("   ") == ParsedQuery()
    assert parse_query(None) == ParsedQuery()


def test_parse_is_idempotent():
    """Test that parsing the same text twice gives equal results."""
    query = "Best rated wireless earbuds between 20 and 80!"
    assert parse_query(query) == parse_query(query)


def test_price_bounds_minor_units():
    """Test conversion from display units to cents."""
    parsed = parse_query("speaker between 20 and 90")

    assert parsed.price_bounds_minor() == (2_000, 9_000)
    assert parsed.price_bounds_minor(factor=1) == (20, 90)
    assert parse_query("speaker").price_bounds_minor() == (None, None)

"""Heuristic natural-language search query parser.

Extracts price bounds and sort intent from free text such as
"best rated bluetooth headphones under 100" and returns the leftover keyword
text. Parsing is rule based: each category is an ordered table of regex
rules and the first matching rule wins. No rule re-scans text stripped by an
earlier rule.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

from shopsense.recommender.models import ParsedQuery, SortBy
from shopsense.recommender.tokenize import tokenize

# Configure module logger
logger = logging.getLogger(__name__)

# Keywords shorter than this are dropped
MIN_KEYWORD_LENGTH = 3

_NON_WORD = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class PriceMatch:
    """Outcome of a price rule: the bounds it sets and the text it consumed."""

    rule: str
    matched: str
    price_min: Optional[int] = None
    price_max: Optional[int] = None


@dataclass(frozen=True)
class PriceRule:
    """A price extraction rule.

    `bound` is "range" (two numbers, sets both bounds), "max" or "min".
    """

    name: str
    pattern: Pattern[str]
    bound: str

    def apply(self, text: str) -> Optional[PriceMatch]:
        match = self.pattern.search(text)
        if match is None:
            return None

        values = [int(group) for group in match.groups()]
        if self.bound == "range":
            return PriceMatch(
                rule=self.name,
                matched=match.group(0),
                price_min=min(values),
                price_max=max(values),
            )
        if self.bound == "max":
            return PriceMatch(rule=self.name, matched=match.group(0), price_max=values[0])
        return PriceMatch(rule=self.name, matched=match.group(0), price_min=values[0])


@dataclass(frozen=True)
class SortRule:
    """A sort-intent rule: a detection pattern and the words it strips."""

    name: str
    sort_by: SortBy
    detect: Pattern[str]
    strip: Pattern[str]

    def matches(self, text: str) -> bool:
        return self.detect.search(text) is not None

    def remove_words(self, text: str) -> str:
        return self.strip.sub(" ", text)


RANGE_RULE = PriceRule(
    name="range",
    pattern=re.compile(
        r"(?:\b(?:between|from)\s*)?\$?(\d+)\s*(?:and|to|-|~)\s*\$?(\d+)"
    ),
    bound="range",
)

# Independent bounds, only consulted when RANGE_RULE does not match
BOUND_RULES: Tuple[PriceRule, ...] = (
    PriceRule(
        name="upper_bound",
        pattern=re.compile(r"\b(?:under|below|less than|max|maximum)\s*\$?(\d+)"),
        bound="max",
    ),
    PriceRule(
        name="lower_bound",
        pattern=re.compile(r"\b(?:over|above|more than|min|minimum)\s*\$?(\d+)"),
        bound="min",
    ),
)

SORT_RULES: Tuple[SortRule, ...] = (
    SortRule(
        name="rating",
        sort_by=SortBy.RATING,
        detect=re.compile(r"\b(?:best|top|highest)\b.*\brat(?:ed|ing)\b"),
        strip=re.compile(r"\b(?:best|top|highest|rated|rating)\b"),
    ),
    SortRule(
        name="price",
        sort_by=SortBy.PRICE,
        detect=re.compile(r"\bcheap(?:est)?\b|\blowest\b.*\bprice\b|\bbudget\b"),
        strip=re.compile(r"\b(?:cheap(?:est)?|lowest|budget|price)\b"),
    ),
)


def extract_price_bounds(
    text: str,
) -> Tuple[Optional[int], Optional[int], str, List[str]]:
    """Apply the price rules to lower-cased text.

    Returns:
        A tuple containing:
            - price_min or None
            - price_max or None
            - the text with every matched fragment removed
            - names of the rules that fired, in order
    """
    price_min: Optional[int] = None
    price_max: Optional[int] = None
    working = text
    fired: List[str] = []

    range_match = RANGE_RULE.apply(text)
    if range_match is not None:
        working = working.replace(range_match.matched, " ", 1)
        return range_match.price_min, range_match.price_max, working, [range_match.rule]

    for rule in BOUND_RULES:
        bound_match = rule.apply(text)
        if bound_match is None:
            continue
        if bound_match.price_max is not None:
            price_max = bound_match.price_max
        if bound_match.price_min is not None:
            price_min = bound_match.price_min
        working = working.replace(bound_match.matched, " ", 1)
        fired.append(rule.name)

    return price_min, price_max, working, fired


def extract_sort_intent(original: str, working: str) -> Tuple[SortBy, str]:
    """Detect sort intent on the original text and strip its words from `working`."""
    for rule in SORT_RULES:
        if rule.matches(original):
            return rule.sort_by, rule.remove_words(working)
    return SortBy.RELEVANCE, working


def clean_text(text: str) -> str:
    """Replace punctuation with spaces, collapse whitespace and trim."""
    return " ".join(_NON_WORD.sub(" ", text).split())


def parse_query(raw_query: Optional[str]) -> ParsedQuery:
    """Parse a free-text search query.

    Args:
        raw_query: Query as typed by the shopper. None is treated as empty.

    Returns:
        ParsedQuery with price bounds in display units, sort intent and the
        residual keyword text.

    Example:
        >>> parsed = parse_query("bluetooth headphones under 100")
        >>> parsed.price_max, parsed.text, parsed.keywords
        (100, 'bluetooth headphones', ['bluetooth', 'headphones'])
    """
    lowered = (raw_query or "").lower().strip()
    if not lowered:
        return ParsedQuery()

    price_min, price_max, working, fired = extract_price_bounds(lowered)
    sort_by, working = extract_sort_intent(lowered, working)

    text = clean_text(working)
    keywords = [token for token in tokenize(text) if len(token) >= MIN_KEYWORD_LENGTH]

    logger.debug(
        "Parsed search query",
        extra={
            "price_rules": fired,
            "price_min": price_min,
            "price_max": price_max,
            "sort_by": sort_by.value,
        },
    )

    return ParsedQuery(
        text=text or None,
        price_min=price_min,
        price_max=price_max,
        sort_by=sort_by,
        keywords=keywords,
    )

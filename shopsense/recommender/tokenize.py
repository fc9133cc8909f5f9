"""Text tokenization shared by the vectorizer and query relevance scoring."""

import re
from typing import List, Optional

_NON_WORD = re.compile(r"[^\w\s]")


def tokenize(text: Optional[str]) -> List[str]:
    """Split text into lower-case word tokens.

    Punctuation is replaced with spaces before splitting, so "wi-fi" yields
    ["wi", "fi"].

    Args:
        text: Raw text. None is treated as empty.

    Returns:
        List of non-empty tokens in order of appearance.

    Example:
        >>> tokenize("Hello, World! 4K")
        ['hello', 'world', '4k']
    """
    if not text:
        return []
    return _NON_WORD.sub(" ", text.lower()).split()

"""
Token estimation.

Character-length heuristic shared by the chunker and the prompt context
budget so that both sides agree on how large a chunk is.

Dependencies: None
System role: Deterministic token accounting
"""

import math

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """
    Estimate the token count of a text.

    Args:
        text: Any string

    Returns:
        int: ceil(len(text) / CHARS_PER_TOKEN), 0 for empty text
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def tokens_to_chars(tokens: int) -> int:
    """Largest character length whose estimate stays within ``tokens``."""
    return max(tokens, 0) * CHARS_PER_TOKEN

"""
Decides whether edited content differs enough to be worth re-embedding.
"""

SIGNIFICANT_OVERLAP = 0.85


def _word_set(text: str) -> set:
    return set(text.lower().split())


def should_re_vectorize(old_text: str, new_text: str) -> bool:
    """True when the distinct words of the two texts overlap less than 85%.

    Overlap is |old & new| / max(|old|, |new|) over case-folded,
    whitespace-separated words. Empty input on either side always counts as
    a significant change.
    """
    if not old_text or not new_text:
        return True

    old_words = _word_set(old_text)
    new_words = _word_set(new_text)
    largest = max(len(old_words), len(new_words))
    if largest == 0:
        return True

    overlap = len(old_words & new_words) / largest
    return overlap < SIGNIFICANT_OVERLAP

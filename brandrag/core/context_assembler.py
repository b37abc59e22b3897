"""
Turns retrieved vectors into the named text fields of a RAGContext.

Each field comes from a small extractor that only looks at a subset of the
vectors. The assembled context is then cut down to the configured character
budget.
"""

from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional

from .schema import ContentType, ContentVector, RAGContext, RetrievalOptions

HIGH_PERFORMANCE = 0.7
LOW_PERFORMANCE = 0.3
ELLIPSIS = "..."


def _top(values: Iterable[str], n: int) -> List[tuple]:
    # most_common keeps first-seen order for equal counts
    return Counter(v for v in values if v).most_common(n)


def common_styles(vectors: List[ContentVector], n: int = 3) -> List[str]:
    return [style for style, _ in _top((v.metadata.style for v in vectors), n)]


def is_high_performing(vector: ContentVector) -> bool:
    return vector.metadata.performance > HIGH_PERFORMANCE


def is_low_performing(vector: ContentVector) -> bool:
    return vector.metadata.performance < LOW_PERFORMANCE


def extract_brand_patterns(brand_vectors: List[ContentVector], high_performing: List[ContentVector]) -> str:
    if not brand_vectors and not high_performing:
        return ""

    patterns = []
    for vector in brand_vectors:
        if vector.text_content:
            patterns.append(f"Brand essence: {vector.text_content[:200]}...")

    styles = common_styles(high_performing)
    if styles:
        patterns.append(f"Successful brand styles: {', '.join(styles)}")

    return "\n".join(patterns)


def extract_successful_styles(high_performing: List[ContentVector]) -> str:
    top = _top((v.metadata.style for v in high_performing), 5)
    return ", ".join(f"{style} (used {count} times successfully)" for style, count in top)


def extract_avoid_patterns(low_performing: List[ContentVector]) -> str:
    styles = [style for style, _ in _top((v.metadata.style for v in low_performing), 3)]
    if not styles:
        return ""
    return f"Avoid these styles that performed poorly: {', '.join(styles)}"


def extract_industry_insights(industry_vectors: List[ContentVector]) -> str:
    # No cross-user industry data source exists yet
    return ""


def extract_seasonal_trends(vectors: List[ContentVector], now: datetime) -> str:
    """Most common styles among vectors created in the same calendar month as ``now`` (any year)."""
    seasonal = [
        v for v in vectors
        if v.metadata.created_at is not None and v.metadata.created_at.month == now.month
    ]
    styles = common_styles(seasonal)
    if not styles:
        return ""
    return f"Current seasonal trends: {', '.join(styles)}"


def extract_voice_patterns(social_vectors: List[ContentVector]) -> str:
    high = [v for v in social_vectors if is_high_performing(v)]
    phrases = []
    for vector in high:
        first_sentence = vector.text_content.split(".")[0]
        if 10 < len(first_sentence) < 100:
            phrases.append(first_sentence)
    phrases = phrases[:3]
    if not phrases:
        return ""
    return f"Successful voice patterns: {' | '.join(phrases)}"


def extract_effective_hashtags(social_vectors: List[ContentVector]) -> str:
    high = [v for v in social_vectors if is_high_performing(v)]
    top = _top((tag for v in high for tag in v.metadata.tags), 10)
    return " ".join(f"#{tag}" for tag, _ in top)


def extract_seo_keywords(article_vectors: List[ContentVector]) -> str:
    high = [v for v in article_vectors if is_high_performing(v)]
    top = _top((tag for v in high for tag in v.metadata.tags), 8)
    return ", ".join(keyword for keyword, _ in top)


def extract_performance_insights(vectors: List[ContentVector]) -> str:
    if not vectors:
        return ""
    mean = sum(v.metadata.performance for v in vectors) / len(vectors)
    if mean > HIGH_PERFORMANCE:
        return "Your content consistently performs well"
    if mean < LOW_PERFORMANCE:
        return "Consider adjusting your content strategy based on successful patterns"
    return ""


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max(max_length - len(ELLIPSIS), 0)] + ELLIPSIS


def truncate_context(context: RAGContext, max_length: int) -> RAGContext:
    """Fit the context into ``max_length`` characters.

    Within budget the context is returned unchanged. Otherwise the budget is
    split evenly across the present fields and each field is cut to its
    share, ending in an ellipsis when cut.
    """
    present = context.populated_fields()
    if context.total_length() <= max_length:
        return context

    share = max_length // len(present)
    truncated = {name: truncate_text(value, share) for name, value in present.items()}
    return RAGContext(**truncated)


def assemble(user_vectors: List[ContentVector], industry_vectors: List[ContentVector],
             options: RetrievalOptions, max_context_length: int,
             now: Optional[datetime] = None) -> RAGContext:
    now = now or datetime.now()

    high_performing = [v for v in user_vectors if is_high_performing(v)]
    low_performing = [v for v in user_vectors if is_low_performing(v)]

    brand_vectors = [v for v in user_vectors if v.content_type == ContentType.PROFILE]
    social_vectors = [v for v in user_vectors if v.content_type == ContentType.SOCIAL_POST]
    article_vectors = [v for v in user_vectors if v.content_type == ContentType.ARTICLE]

    context = RAGContext(
        brand_patterns=extract_brand_patterns(brand_vectors, high_performing),
        successful_styles=extract_successful_styles(high_performing),
        avoid_patterns=extract_avoid_patterns(low_performing),
        industry_insights=extract_industry_insights(industry_vectors),
        seasonal_trends=extract_seasonal_trends(user_vectors, now),
    )

    if options.content_type == ContentType.SOCIAL_POST:
        context.voice_patterns = extract_voice_patterns(social_vectors)
        context.effective_hashtags = extract_effective_hashtags(social_vectors)

    if options.content_type == ContentType.ARTICLE:
        context.seo_keywords = extract_seo_keywords(article_vectors)

    context.performance_insights = extract_performance_insights(user_vectors)

    return truncate_context(context, max_context_length)

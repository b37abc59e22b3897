"""
Content adapters: map each native content record onto the text and metadata
the engine embeds.

Records arrive as camelCase documents. Every adapter builds ``Label: value``
lines and drops labels whose value is empty. ``handle_document_change`` is the
entry point for create/update/delete notifications.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .change_detector import should_re_vectorize
from .schema import ContentType, Outcome, RateLimitExceeded, WriteResult
from ..util.logging import logger

DEFAULT_PERFORMANCE = 0.5
BLOG_PREVIEW_CHARS = 1000

# Set only when a vector is first stored; later edits keep the feedback-driven values
FEEDBACK_FIELDS = ("performance", "engagement")


def labeled_lines(pairs: List[Tuple[str, Optional[str]]]) -> str:
    """Join ``Label: value`` lines, skipping empty values."""
    return "\n".join(f"{label}: {value}" for label, value in pairs if value)


def split_tags(value: Optional[str], separator: str) -> List[str]:
    if not value:
        return []
    return [tag.strip().lower() for tag in value.split(separator) if tag.strip()]


class ContentRecord(ABC):
    """Base for native content records."""

    content_type: ContentType
    source_collection: str

    @classmethod
    @abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentRecord":
        pass

    @abstractmethod
    def to_vector_input(self) -> Tuple[str, Dict[str, Any]]:
        """Return ``(text_content, metadata_patch)``."""
        pass

    @abstractmethod
    def change_signature(self) -> str:
        """Text compared between old and new versions to decide on re-embedding."""
        pass

    def default_content_id(self, user_id: str) -> Optional[str]:
        return None


@dataclass
class BrandProfile(ContentRecord):
    brand_name: str = ""
    brand_description: str = ""
    industry: str = ""
    target_keywords: str = ""
    image_style_notes: str = ""
    website_url: str = ""

    content_type = ContentType.PROFILE
    source_collection = "brandProfiles"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrandProfile":
        return cls(
            brand_name=data.get("brandName") or "",
            brand_description=data.get("brandDescription") or "",
            industry=data.get("industry") or "",
            target_keywords=data.get("targetKeywords") or "",
            image_style_notes=data.get("imageStyleNotes") or "",
            website_url=data.get("websiteUrl") or "",
        )

    def to_vector_input(self) -> Tuple[str, Dict[str, Any]]:
        text = labeled_lines([
            ("Brand", self.brand_name or "Unnamed Brand"),
            ("Description", self.brand_description),
            ("Industry", self.industry),
            ("Keywords", self.target_keywords),
            ("Style Notes", self.image_style_notes),
            ("Website", self.website_url),
        ])
        # The profile anchors brand voice, so it is always weighted high
        return text, {"industry": self.industry or None, "performance": 1.0}

    def change_signature(self) -> str:
        return f"{self.brand_description} {self.target_keywords} {self.image_style_notes}"

    def default_content_id(self, user_id: str) -> str:
        return f"brand_{user_id}"


@dataclass
class SocialMediaPost(ContentRecord):
    platform: str = ""
    caption: str = ""
    hashtags: str = ""
    tone: str = ""
    post_goal: str = ""
    target_audience: str = ""
    call_to_action: str = ""
    image_description: str = ""

    content_type = ContentType.SOCIAL_POST
    source_collection = "socialMediaPosts"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SocialMediaPost":
        return cls(
            platform=data.get("platform") or "",
            caption=data.get("caption") or "",
            hashtags=data.get("hashtags") or "",
            tone=data.get("tone") or "",
            post_goal=data.get("postGoal") or "",
            target_audience=data.get("targetAudience") or "",
            call_to_action=data.get("callToAction") or "",
            image_description=data.get("imageDescription") or "",
        )

    def to_vector_input(self) -> Tuple[str, Dict[str, Any]]:
        text = labeled_lines([
            ("Platform", self.platform),
            ("Caption", self.caption),
            ("Hashtags", self.hashtags),
            ("Tone", self.tone),
            ("Goal", self.post_goal),
            ("Target Audience", self.target_audience),
            ("Call to Action", self.call_to_action),
            ("Image Description", self.image_description),
        ])
        return text, {
            "platform": self.platform or None,
            "tags": split_tags(self.hashtags, "#"),
            "performance": DEFAULT_PERFORMANCE,
            "engagement": 0,
        }

    def change_signature(self) -> str:
        return f"{self.caption} {self.hashtags}"


@dataclass
class BlogPost(ContentRecord):
    title: str = ""
    content: str = ""
    platform: str = ""
    article_style: str = ""
    blog_tone: str = ""
    target_audience: str = ""
    tags: str = ""
    outline: str = ""

    content_type = ContentType.ARTICLE
    source_collection = "blogPosts"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlogPost":
        return cls(
            title=data.get("title") or "",
            content=data.get("content") or "",
            platform=data.get("platform") or "",
            article_style=data.get("articleStyle") or "",
            blog_tone=data.get("blogTone") or "",
            target_audience=data.get("targetAudience") or "",
            tags=data.get("tags") or "",
            outline=data.get("outline") or "",
        )

    def content_preview(self) -> str:
        if len(self.content) > BLOG_PREVIEW_CHARS:
            return self.content[:BLOG_PREVIEW_CHARS] + "..."
        return self.content

    def to_vector_input(self) -> Tuple[str, Dict[str, Any]]:
        text = labeled_lines([
            ("Title", self.title),
            ("Platform", self.platform),
            ("Style", self.article_style),
            ("Tone", self.blog_tone),
            ("Target Audience", self.target_audience),
            ("Tags", self.tags),
            ("Outline", self.outline),
            ("Content Preview", self.content_preview()),
        ])
        return text, {
            "platform": self.platform or None,
            "style": self.article_style or None,
            "tags": split_tags(self.tags, ","),
            "performance": DEFAULT_PERFORMANCE,
            "engagement": 0,
        }

    def change_signature(self) -> str:
        return f"{self.title} {self.content}"


@dataclass
class AdCampaign(ContentRecord):
    campaign_concept: str = ""
    headlines: List[str] = field(default_factory=list)
    body_texts: List[str] = field(default_factory=list)
    platform_guidance: str = ""
    target_platforms: List[str] = field(default_factory=list)
    brand_name: str = ""
    industry: str = ""
    campaign_goal: str = ""
    target_audience: str = ""
    call_to_action: str = ""
    target_keywords: str = ""

    content_type = ContentType.CAMPAIGN
    source_collection = "adCampaigns"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdCampaign":
        return cls(
            campaign_concept=data.get("campaignConcept") or "",
            headlines=list(data.get("headlines") or []),
            body_texts=list(data.get("bodyTexts") or []),
            platform_guidance=data.get("platformGuidance") or "",
            target_platforms=list(data.get("targetPlatforms") or []),
            brand_name=data.get("brandName") or "",
            industry=data.get("industry") or "",
            campaign_goal=data.get("campaignGoal") or "",
            target_audience=data.get("targetAudience") or "",
            call_to_action=data.get("callToAction") or "",
            target_keywords=data.get("targetKeywords") or "",
        )

    def to_vector_input(self) -> Tuple[str, Dict[str, Any]]:
        text = labeled_lines([
            ("Campaign Concept", self.campaign_concept),
            ("Headlines", " | ".join(self.headlines)),
            ("Body Texts", " | ".join(self.body_texts)),
            ("Platform Guidance", self.platform_guidance),
            ("Target Platforms", ", ".join(self.target_platforms)),
            ("Brand", self.brand_name),
            ("Industry", self.industry),
            ("Goal", self.campaign_goal),
            ("Target Audience", self.target_audience),
            ("Call to Action", self.call_to_action),
            ("Keywords", self.target_keywords),
        ])
        return text, {
            "platform": ",".join(self.target_platforms) or None,
            "industry": self.industry or None,
            "tags": split_tags(self.target_keywords, ","),
            "performance": DEFAULT_PERFORMANCE,
            "engagement": 0,
        }

    def change_signature(self) -> str:
        return f"{self.campaign_concept} {' '.join(self.headlines)}"


@dataclass
class SavedImage(ContentRecord):
    prompt: str = ""
    style: str = ""
    storage_url: str = ""

    content_type = ContentType.SAVED_IMAGE
    source_collection = "savedLibraryImages"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedImage":
        return cls(
            prompt=data.get("prompt") or "",
            style=data.get("style") or "",
            storage_url=data.get("storageUrl") or "",
        )

    def to_vector_input(self) -> Tuple[str, Dict[str, Any]]:
        text = labeled_lines([
            ("Prompt", self.prompt),
            ("Style", self.style),
            ("Image URL", self.storage_url),
        ])
        return text, {
            "style": self.style or None,
            "tags": split_tags(self.style, ","),
            "performance": DEFAULT_PERFORMANCE,
            "engagement": 0,
        }

    def change_signature(self) -> str:
        return f"{self.prompt} {self.style}"


@dataclass
class BrandLogo(ContentRecord):
    logo_data: str = ""

    content_type = ContentType.LOGO
    source_collection = "brandLogos"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrandLogo":
        return cls(logo_data=data.get("logoData") or "")

    def to_vector_input(self) -> Tuple[str, Dict[str, Any]]:
        return "Brand Logo: Generated logo for brand identity", {
            "style": "logo",
            "tags": ["logo", "brand", "identity"],
            "performance": 1.0,
            "engagement": 0,
        }

    def change_signature(self) -> str:
        # Logo data is opaque; every write is treated as significant
        return ""


RECORD_TYPES = {
    ContentType.PROFILE: BrandProfile,
    ContentType.SOCIAL_POST: SocialMediaPost,
    ContentType.ARTICLE: BlogPost,
    ContentType.CAMPAIGN: AdCampaign,
    ContentType.SAVED_IMAGE: SavedImage,
    ContentType.LOGO: BrandLogo,
}


def parse_record(content_type, data: Dict[str, Any]) -> ContentRecord:
    return RECORD_TYPES[ContentType(content_type)].from_dict(data)


def vectorize(engine, user_id: str, record: ContentRecord, content_id: Optional[str] = None) -> WriteResult:
    """Store ``record`` for ``user_id``, or update it in place if already vectorized.

    Raises:
        RateLimitExceeded: storing a new vector was rejected by the rate limiter.
    """
    content_id = content_id or record.default_content_id(user_id)
    if not content_id:
        raise ValueError(f"content_id is required for {record.content_type.value} records")

    text_content, metadata_patch = record.to_vector_input()
    if not text_content.strip():
        logger.info(f"No meaningful {record.content_type.value} content to vectorize: {content_id}")
        return WriteResult(Outcome.EMPTY, "no text content")

    source_doc_id = user_id if record.content_type == ContentType.PROFILE else content_id

    try:
        existing = engine.vector_store.find_by_content_id(user_id, content_id)
        if existing is not None:
            descriptive = {k: v for k, v in metadata_patch.items() if k not in FEEDBACK_FIELDS}
            return engine.update_content_vector_result(user_id, content_id, text_content, descriptive)

        return engine.store_content_vector_result(
            user_id,
            record.content_type,
            content_id,
            text_content,
            metadata_patch,
            record.source_collection,
            source_doc_id,
        )

    except RateLimitExceeded:
        raise
    except Exception as e:
        logger.log_vector_operation("vectorize", user_id, content_id, {"error": str(e)}, status="failed")
        return WriteResult(Outcome.ERROR_ABSORBED, str(e))


def handle_document_change(engine, content_type, user_id: str, content_id: Optional[str],
                           old_doc: Optional[Dict[str, Any]],
                           new_doc: Optional[Dict[str, Any]]) -> WriteResult:
    """React to a create, update or delete of a native content record."""
    content_type = ContentType(content_type)

    if new_doc is None:
        # Vectors of deleted records are not removed
        logger.info(f"{content_type.value} record deleted: {content_id} (user {user_id}); vector left in place")
        return WriteResult(Outcome.SKIPPED, "record deleted")

    new_record = parse_record(content_type, new_doc)

    if old_doc is not None and content_type != ContentType.LOGO:
        old_record = parse_record(content_type, old_doc)
        if not should_re_vectorize(old_record.change_signature(), new_record.change_signature()):
            logger.debug(f"No significant changes in {content_type.value}: {content_id}")
            return WriteResult(Outcome.SKIPPED, "no significant change")

    return vectorize(engine, user_id, new_record, content_id)

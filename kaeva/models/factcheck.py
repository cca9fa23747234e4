from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class VerdictLabel(str, Enum):
    TRUE = "TRUE"
    FALSE = "FALSE"
    MOSTLY_TRUE = "MOSTLY_TRUE"
    MOSTLY_FALSE = "MOSTLY_FALSE"
    MISLEADING = "MISLEADING"
    UNVERIFIED = "UNVERIFIED"
    SATIRE = "SATIRE"
    OPINION = "OPINION"

    @classmethod
    def coerce(cls, value: Any) -> "VerdictLabel":
        """Map loose model output ("Mostly true", "false") onto a label, else UNVERIFIED."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.UNVERIFIED
        key = value.strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return cls.UNVERIFIED


class Stance(str, Enum):
    SUPPORTS = "supports"
    CONTRADICTS = "contradicts"
    NEUTRAL = "neutral"
    REFERENCED = "referenced"

    @classmethod
    def coerce(cls, value: Any) -> "Stance":
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.NEUTRAL


class Recommendation(str, Enum):
    HIGH_CONFIDENCE = "HIGH_CONFIDENCE"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    UNKNOWN = "unknown"


class TierInfo(BaseModel):
    """Trust tier assigned to a source domain."""

    model_config = ConfigDict(frozen=True)

    tier: int = Field(ge=1, le=4)
    label: str
    trust: str = ""
    weight: float = Field(ge=0.0, le=1.0)


class SourceReference(CamelModel):
    """A cited source, from the model's own list or from search grounding."""

    title: str = ""
    url: str = ""
    snippet: str = ""
    stance: Stance = Stance.NEUTRAL
    tier: int | None = None
    tier_label: str = "Unranked"
    weight: float | None = Field(default=None, exclude=True)


class MediaAnalysis(CamelModel):
    """Normalized output of the media authenticity service."""

    type: MediaType = MediaType.UNKNOWN
    authenticity_score: float | None = None
    verdict: Any = None
    scores: dict[str, Any] | None = None
    ensemble_scores: dict[str, Any] | None = Field(
        default=None,
        alias="ensemble_scores",
        validation_alias=AliasChoices("ensemble_scores", "ensembleScores"),
    )
    model: Any = None
    version: Any = None
    filename: str | None = None
    platform: str | None = None
    deepfake_indicators: list[str] = Field(default_factory=list)
    notes: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )


class OcrResult(CamelModel):
    """Text extracted from an image, plus whatever else the OCR service reported."""

    text: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)


class ParsedVerdict(BaseModel):
    """The structured block read out of the model's free-text answer."""

    verdict: str = VerdictLabel.UNVERIFIED.value
    confidence: float = 0.5
    explanation: str = ""
    sources: list[Any] = Field(default_factory=list)


class VerificationOutcome(BaseModel):
    """What the generative model returned for one claim."""

    raw_text: str = ""
    grounding_sources: list[SourceReference] = Field(default_factory=list)
    search_queries: list[str] = Field(default_factory=list)


class ConfidenceResult(BaseModel):
    score: float = Field(ge=0.0, le=1.0)
    breakdown: dict[str, float]
    recommendation: Recommendation


class VerdictResult(CamelModel):
    """Terminal payload of a completed fact-check job."""

    analysis_id: str
    input_type: str = "text"
    claim: str | None = None
    original_claim: str | None = None
    is_question: bool = False
    verdict: VerdictLabel = VerdictLabel.UNVERIFIED
    explanation: str = ""
    confidence: float = Field(ge=0.0, le=1.0)
    confidence_breakdown: dict[str, float] = Field(default_factory=dict)
    recommendation: Recommendation
    sources: list[SourceReference] = Field(default_factory=list)
    search_queries: list[str] = Field(default_factory=list)
    media_analysis: MediaAnalysis | None = None
    text_extraction: OcrResult | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class JobRecord(CamelModel):
    """Progress of one analysis as seen by pollers."""

    id: str
    status: JobStatus = JobStatus.PROCESSING
    progress: int = Field(10, ge=0, le=100)
    result: VerdictResult | None = None
    error: str | None = None


class AnalyzeRequest(CamelModel):
    claim: str | None = None
    media_url: str | None = Field(
        default=None, validation_alias=AliasChoices("mediaUrl", "media_url")
    )
    platform: str | None = None


class MediaRequest(CamelModel):
    media_url: str | None = Field(
        default=None, validation_alias=AliasChoices("mediaUrl", "media_url", "url")
    )
    platform: str | None = None

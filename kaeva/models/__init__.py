from kaeva.models.factcheck import (
    AnalyzeRequest,
    ConfidenceResult,
    JobRecord,
    JobStatus,
    MediaAnalysis,
    MediaRequest,
    MediaType,
    OcrResult,
    ParsedVerdict,
    Recommendation,
    SourceReference,
    Stance,
    TierInfo,
    VerdictLabel,
    VerdictResult,
    VerificationOutcome,
)

__all__ = [
    "AnalyzeRequest",
    "ConfidenceResult",
    "JobRecord",
    "JobStatus",
    "MediaAnalysis",
    "MediaRequest",
    "MediaType",
    "OcrResult",
    "ParsedVerdict",
    "Recommendation",
    "SourceReference",
    "Stance",
    "TierInfo",
    "VerdictLabel",
    "VerdictResult",
    "VerificationOutcome",
]

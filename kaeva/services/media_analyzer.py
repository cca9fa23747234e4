"""Media authenticity analysis via the external inference service.

The media is downloaded, typed by its Content-Type, and posted as multipart
``file`` to ``/image``, ``/video`` or ``/audio``. Failures never escape:
they come back as a MediaAnalysis with ``authenticity_score=None`` and a note.
"""

from typing import Any, NamedTuple
from urllib.parse import urlparse

import httpx

from kaeva.config import InferenceConfig
from kaeva.models import MediaAnalysis, MediaType
from kaeva.utils.logging import get_component_logger

logger = get_component_logger("media_analyzer")

PLATFORMS = ("whatsapp", "instagram", "telegram", "screenshot")
DEFAULT_PLATFORM = "clean"
INDICATOR_THRESHOLD = 0.7
DEFAULT_FAKE_PROBABILITY = 0.5

# httpx.InvalidURL is not an HTTPError; pydantic's ValidationError is a ValueError.
MEDIA_ERRORS = (httpx.HTTPError, httpx.InvalidURL, ValueError)

_DEFAULT_EXTENSIONS = {
    MediaType.IMAGE: "jpg",
    MediaType.VIDEO: "mp4",
    MediaType.AUDIO: "wav",
}


def detect_platform(hint: str | None) -> str:
    """Map a free-text source hint onto a known compression profile."""
    if not hint:
        return DEFAULT_PLATFORM
    lowered = hint.lower()
    for platform in PLATFORMS:
        if platform in lowered:
            return platform
    return DEFAULT_PLATFORM


def media_type_for(content_type: str | None) -> MediaType:
    content_type = (content_type or "").lower()
    if content_type.startswith("video/"):
        return MediaType.VIDEO
    if content_type.startswith("audio/"):
        return MediaType.AUDIO
    return MediaType.IMAGE


def infer_filename(media_url: str, media_type: MediaType) -> str:
    """Last path segment of the URL, else ``file.<ext>`` for the media type."""
    try:
        segment = urlparse(media_url).path.rsplit("/", 1)[-1]
    except ValueError:
        segment = ""
    return segment or f"file.{_DEFAULT_EXTENSIONS.get(media_type, 'bin')}"


def deepfake_indicators(result: dict[str, Any], fake_probability: float) -> list[str]:
    indicators = []
    if result.get("verdict") == "fake":
        indicators.append(f"Ensemble: {fake_probability * 100:.1f}% fake confidence")
    ensemble = result.get("ensemble_scores")
    if isinstance(ensemble, dict):
        for model, score in ensemble.items():
            if isinstance(score, (int, float)) and score > INDICATOR_THRESHOLD:
                indicators.append(f"{model}: {score * 100:.1f}% fake")
    flags = result.get("flags")
    if isinstance(flags, list):
        indicators.extend(str(flag) for flag in flags)
    return indicators


def _fake_probability(result: dict[str, Any]) -> float:
    scores = result.get("scores")
    fake = scores.get("fake") if isinstance(scores, dict) else None
    if isinstance(fake, bool) or not isinstance(fake, (int, float)):
        return DEFAULT_FAKE_PROBABILITY
    return float(fake)


class FetchedMedia(NamedTuple):
    content: bytes
    content_type: str


async def fetch_media(client: httpx.AsyncClient, media_url: str) -> FetchedMedia:
    """Download media; raises one of MEDIA_ERRORS on failure."""
    response = await client.get(media_url, follow_redirects=True)
    response.raise_for_status()
    return FetchedMedia(response.content, response.headers.get("content-type", ""))


def download_failed(media_url: str, error: Exception) -> MediaAnalysis:
    logger.warning("Media analysis error for %s: %s", media_url, error)
    return MediaAnalysis(
        type=MediaType.UNKNOWN,
        authenticity_score=None,
        notes=f"Media analysis error: {error}",
    )


async def analyze_media(
    client: httpx.AsyncClient,
    media_url: str | None,
    config: InferenceConfig,
    platform: str | None = None,
    media: FetchedMedia | None = None,
) -> MediaAnalysis | None:
    """Score a media URL for authenticity.

    Args:
        client: Shared HTTP client
        media_url: URL of the image, video or audio to analyze
        config: Inference service settings
        platform: Compression profile hint (ignored for audio)
        media: Already downloaded media; fetched from ``media_url`` when omitted

    Returns:
        MediaAnalysis, degraded on failure, or None when no URL was given
    """
    if not media_url:
        return None

    platform = detect_platform(platform) if platform else config.default_platform
    if media is None:
        try:
            media = await fetch_media(client, media_url)
        except MEDIA_ERRORS as e:
            return download_failed(media_url, e)

    media_type = media_type_for(media.content_type)
    filename = infer_filename(media_url, media_type)
    try:
        params = {} if media_type == MediaType.AUDIO else {"platform": platform}
        response = await client.post(
            f"{config.base_url}/{media_type.value}",
            params=params,
            files={"file": (filename, media.content, media.content_type or "application/octet-stream")},
            timeout=config.timeout,
        )
        if not response.is_success:
            logger.warning(
                "Media analysis failed with status %s for %s", response.status_code, media_type.value
            )
            return MediaAnalysis(
                type=media_type,
                filename=filename,
                platform=platform,
                authenticity_score=None,
                notes=f"ML analysis failed ({response.status_code})",
            )

        result = response.json()
        if not isinstance(result, dict):
            raise ValueError("inference service returned a non-object body")

        fake_probability = _fake_probability(result)
        return MediaAnalysis(
            type=media_type,
            filename=filename,
            platform=platform,
            verdict=result.get("verdict"),
            authenticity_score=round((1 - fake_probability) * 10000) / 10000,
            scores=result.get("scores") if isinstance(result.get("scores"), dict) else None,
            ensemble_scores=(
                result.get("ensemble_scores")
                if isinstance(result.get("ensemble_scores"), dict)
                else None
            ),
            model=result.get("model"),
            version=result.get("version"),
            deepfake_indicators=deepfake_indicators(result, fake_probability),
        )
    except MEDIA_ERRORS as e:
        logger.warning("Media analysis error for %s: %s", media_url, e)
        return MediaAnalysis(
            type=media_type,
            filename=filename,
            platform=platform,
            authenticity_score=None,
            notes=f"Media analysis error: {e}",
        )

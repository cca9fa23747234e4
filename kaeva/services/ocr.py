"""OCR extraction via the external inference service."""

import httpx

from kaeva.config import InferenceConfig
from kaeva.models import OcrResult
from kaeva.services.media_analyzer import (
    MEDIA_ERRORS,
    FetchedMedia,
    fetch_media,
    infer_filename,
    media_type_for,
)
from kaeva.utils.logging import get_component_logger

logger = get_component_logger("ocr")


async def extract_text(
    client: httpx.AsyncClient,
    media_url: str | None,
    config: InferenceConfig,
    media: FetchedMedia | None = None,
) -> OcrResult | None:
    """Extract text from the media at ``media_url``; None on any failure.

    ``media`` skips the download when the caller already holds the bytes.
    """
    if not media_url:
        return None

    try:
        if media is None:
            media = await fetch_media(client, media_url)
        filename = infer_filename(media_url, media_type_for(media.content_type))
        response = await client.post(
            f"{config.base_url}/ocr",
            files={"file": (filename, media.content, media.content_type or "application/octet-stream")},
            timeout=config.timeout,
        )
        if not response.is_success:
            logger.warning("OCR failed with status %s", response.status_code)
            return None
        payload = response.json()
    except MEDIA_ERRORS as e:
        logger.warning("OCR error for %s: %s", media_url, e)
        return None

    if not isinstance(payload, dict):
        logger.warning("OCR service returned a non-object body")
        return None

    text = payload.get("text")
    fields = {key: value for key, value in payload.items() if key != "text"}
    return OcrResult(text=text.strip() if isinstance(text, str) else "", fields=fields)

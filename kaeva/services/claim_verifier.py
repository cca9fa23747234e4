"""Claim verification with a search-grounded generative model.

The model is asked to reason in prose and close with a fenced JSON block;
parsing that block is left to :mod:`kaeva.services.verdict_parser`. Search
grounding citations and queries are returned alongside the raw text.
"""

from typing import Any

import httpx

from kaeva.config import GoogleConfig, ServiceAccount
from kaeva.models import MediaAnalysis, SourceReference, Stance, VerificationOutcome
from kaeva.services.source_tiers import SourceTierTable, default_table
from kaeva.utils.logging import get_component_logger

logger = get_component_logger("claim_verifier")

VERTEX_ENDPOINT = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
    "/locations/{location}/publishers/google/models/{model}:generateContent"
)
GENERATIVE_LANGUAGE_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)

PROMPT = """You are Kaeva, an AI-powered news and deepfake verification system.
Fact-check the claim below. Search the web for current, authoritative evidence
and determine whether the claim is true, false, misleading, or unverifiable.

{source_priority}

INSTRUCTIONS:
1. Evaluate the claim against what you find.
2. Determine each source's stance (supports, contradicts, or neutral).
3. Weigh evidence by source tier.
4. Provide a clear verdict.
{media_block}
CLAIM: {claim}

At the END of your response, include this exact JSON block:
```json
{{"verdict":"TRUE|FALSE|MOSTLY_TRUE|MOSTLY_FALSE|MISLEADING|UNVERIFIED|SATIRE|OPINION","confidence":0-100,"explanation":"2-3 sentence explanation","sources":[{{"url":"...","title":"...","stance":"supports|contradicts|neutral"}}]}}
```"""


def build_prompt(claim: str, media: MediaAnalysis | None, tiers: SourceTierTable) -> str:
    media_block = ""
    if media is not None and media.authenticity_score is not None:
        media_block = (
            f"\nMEDIA ANALYSIS: {media.type.value}, "
            f"authenticity={media.authenticity_score * 100:.1f}%, verdict={media.verdict}\n"
        )
        if media.deepfake_indicators:
            media_block += f"Deepfake indicators: {', '.join(media.deepfake_indicators)}\n"
    return PROMPT.format(
        source_priority=tiers.priority_text(), media_block=media_block, claim=claim
    )


def endpoint_for(config: GoogleConfig, account: ServiceAccount | None) -> str:
    if config.endpoint:
        return config.endpoint.format(model=config.model, location=config.location)
    if account is not None and account.project_id:
        return VERTEX_ENDPOINT.format(
            location=config.location, project=account.project_id, model=config.model
        )
    return GENERATIVE_LANGUAGE_ENDPOINT.format(model=config.model)


def read_candidate(data: dict[str, Any]) -> tuple[str, list[dict[str, Any]], list[str]]:
    """Pull answer text, grounding chunks and search queries from a generateContent body."""
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return "", [], []
    candidate = candidates[0]

    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    metadata = candidate.get("groundingMetadata") or {}
    chunks = [
        chunk["web"]
        for chunk in metadata.get("groundingChunks") or []
        if isinstance(chunk, dict) and isinstance(chunk.get("web"), dict)
    ]
    queries = [q for q in metadata.get("webSearchQueries") or [] if isinstance(q, str)]
    return text, chunks, queries


class ClaimVerifier:
    """Runs one grounded verification call per claim."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: GoogleConfig,
        account: ServiceAccount | None = None,
        tiers: SourceTierTable | None = None,
    ):
        self.client = client
        self.config = config
        self.account = account
        self.tiers = tiers if tiers is not None else default_table()

    async def verify(
        self, claim: str, token: str, media: MediaAnalysis | None = None
    ) -> VerificationOutcome | None:
        """Ask the model to fact-check ``claim``.

        Args:
            claim: Normalized claim text
            token: Bearer access token from the credential exchange
            media: Media analysis to mention in the prompt, if any

        Returns:
            VerificationOutcome, or None if the model call failed
        """
        body = {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(claim, media, self.tiers)}]}],
            "tools": [{"googleSearch": {}}],
            "generationConfig": {"temperature": self.config.temperature},
        }
        headers = {"Authorization": f"Bearer {token}"}
        if self.config.api_key:
            headers["x-goog-api-key"] = self.config.api_key

        url = endpoint_for(self.config, self.account)
        try:
            response = await self.client.post(
                url, json=body, headers=headers, timeout=self.config.request_timeout
            )
        except httpx.HTTPError as e:
            logger.warning("Generative model request failed: %s", e)
            return None

        if not response.is_success:
            logger.warning("Generative model returned status %s", response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Generative model returned a non-JSON body")
            return None
        if not isinstance(data, dict):
            return None

        text, chunks, queries = read_candidate(data)
        grounding = [
            self.tiers.annotate(
                SourceReference(
                    title=chunk.get("title") or "",
                    url=chunk.get("uri") or "",
                    stance=Stance.REFERENCED,
                ),
                fallback_host=chunk.get("title"),
            )
            for chunk in chunks
        ]
        logger.info(
            "Model answered with %d characters, %d grounding sources, %d queries",
            len(text),
            len(grounding),
            len(queries),
        )
        return VerificationOutcome(raw_text=text, grounding_sources=grounding, search_queries=queries)

"""
Kaeva Fact-Check Pipeline

This module sequences one analysis end to end:
1. Credential exchange for a bearer token (fatal on failure)
2. Media authenticity and OCR, concurrently, each failing soft
3. Choice of the claim to check: explicit text, else OCR text
4. Grounded claim verification and verdict parsing
5. Source merging, tier weighting and confidence aggregation

Progress is written to the job store at each stage boundary; any uncaught
error ends the job in the ``error`` state with the exception message.
"""

import asyncio
import uuid
from collections.abc import Awaitable
from typing import Any, Optional, TypeVar

import httpx

from kaeva.config import Settings
from kaeva.models import (
    JobStatus,
    MediaAnalysis,
    OcrResult,
    ParsedVerdict,
    SourceReference,
    Stance,
    VerdictLabel,
    VerdictResult,
    VerificationOutcome,
)
from kaeva.pipeline.job_store import JobStore, MemoryJobStore
from kaeva.services.claim_verifier import ClaimVerifier
from kaeva.services.confidence import calculate_confidence, source_agreement, source_quality
from kaeva.services.credentials import fetch_access_token
from kaeva.services.media_analyzer import (
    MEDIA_ERRORS,
    analyze_media,
    download_failed,
    fetch_media,
)
from kaeva.services.ocr import extract_text
from kaeva.services.source_tiers import SourceTierTable, assess_sources, default_table
from kaeva.services.text import is_question, normalize_claim
from kaeva.services.verdict_parser import parse_verdict
from kaeva.utils.logging import get_component_logger, job_context, performance_timer

T = TypeVar("T")

PROGRESS_STARTED = 10
PROGRESS_AUTHENTICATED = 20
PROGRESS_MEDIA_DONE = 40
PROGRESS_VERIFIED = 70
PROGRESS_PARSED = 80
PROGRESS_COMPLETE = 100


def merge_sources(
    reported: list[Any], grounding: list[SourceReference], tiers: SourceTierTable
) -> list[SourceReference]:
    """Merge model-reported and grounding sources, deduplicated by URL.

    Model-reported entries come first and win over grounding entries with the
    same URL, so their stance is kept. Entries without a URL are kept as-is.
    """
    merged: list[SourceReference] = []
    seen: set[str] = set()

    for entry in reported:
        if not isinstance(entry, dict):
            continue
        url = entry.get("url") if isinstance(entry.get("url"), str) else ""
        url = url.strip()
        if url and url in seen:
            continue
        title = entry.get("title")
        source = SourceReference(
            title=title if isinstance(title, str) else "",
            url=url,
            stance=Stance.coerce(entry.get("stance")),
        )
        merged.append(tiers.annotate(source))
        if url:
            seen.add(url)

    for source in grounding:
        if source.url and source.url in seen:
            continue
        merged.append(source)
        if source.url:
            seen.add(source.url)

    return assess_sources(merged)


def input_type_for(claim: str, media: Optional[MediaAnalysis], media_url: Optional[str]) -> str:
    if not media_url:
        return "text"
    if claim:
        return "text+media"
    return media.type.value if media is not None else "media"


class FactCheckPipeline:
    """Runs fact-check jobs and records their progress in a JobStore."""

    def __init__(
        self,
        settings: Settings,
        job_store: Optional[JobStore] = None,
        tiers: Optional[SourceTierTable] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Application settings
            job_store: Where job records live; in-memory by default
            tiers: Source tier table; the packaged table by default
            transport: Optional httpx transport, used by tests to stub the network
        """
        self.settings = settings
        if job_store is None:
            job_store = MemoryJobStore(ttl=settings.jobs.ttl_seconds)
        self.job_store = job_store
        self.tiers = tiers if tiers is not None else default_table()
        self.transport = transport
        self.logger = get_component_logger("factcheck_pipeline")
        self._tasks: set[asyncio.Task] = set()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport,
            timeout=httpx.Timeout(self.settings.google.request_timeout),
        )

    async def submit(
        self,
        claim: Optional[str],
        media_url: Optional[str] = None,
        platform: Optional[str] = None,
        job_id: Optional[str] = None,
    ) -> str:
        """Create a job record and run the pipeline in the background.

        Returns:
            The job id to poll
        """
        job_id = job_id or str(uuid.uuid4())
        await self.job_store.create(job_id)
        task = asyncio.create_task(self.run(job_id, claim, media_url, platform, created=True))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job_id

    async def wait_idle(self) -> None:
        """Wait for every background job started by :meth:`submit`."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _soft(self, label: str, call: Awaitable[Optional[T]]) -> Optional[T]:
        try:
            return await call
        except Exception as e:
            self.logger.warning("%s failed, continuing without it: %s", label, e, exc_info=True)
            return None

    async def _analyze_media(
        self, client: httpx.AsyncClient, media_url: str, platform: Optional[str]
    ) -> tuple[Optional[MediaAnalysis], Optional[OcrResult]]:
        """Download the media once, then score it and OCR it concurrently."""
        try:
            fetched = await fetch_media(client, media_url)
        except MEDIA_ERRORS as e:
            return download_failed(media_url, e), None

        inference = self.settings.inference
        media, ocr = await asyncio.gather(
            self._soft(
                "Media analysis",
                analyze_media(client, media_url, inference, platform, media=fetched),
            ),
            self._soft("OCR", extract_text(client, media_url, inference, media=fetched)),
        )
        return media, ocr

    async def run(
        self,
        job_id: str,
        claim: Optional[str],
        media_url: Optional[str] = None,
        platform: Optional[str] = None,
        created: bool = False,
    ) -> Optional[VerdictResult]:
        """Run one analysis to completion or terminal error.

        Args:
            job_id: Id of the job record to write
            claim: Caller-supplied claim text, may be empty
            media_url: Optional URL of media to analyze and OCR
            platform: Compression profile hint for media analysis
            created: Whether the job record already exists

        Returns:
            The VerdictResult, or None if the job ended in error
        """
        with job_context(job_id):
            if not created:
                await self.job_store.create(job_id)
            try:
                result = await self._run_stages(job_id, claim, media_url, platform)
            except Exception as e:
                self.logger.error("Analysis %s failed: %s", job_id, e, exc_info=True)
                await self.job_store.update(job_id, status=JobStatus.ERROR, progress=0, error=str(e))
                return None

            await self.job_store.update(
                job_id, status=JobStatus.COMPLETE, progress=PROGRESS_COMPLETE, result=result
            )
            self.logger.info(
                "Analysis %s complete: %s (%.1f%% confidence)",
                job_id,
                result.verdict.value,
                result.confidence * 100,
            )
            return result

    async def _run_stages(
        self,
        job_id: str,
        claim: Optional[str],
        media_url: Optional[str],
        platform: Optional[str],
    ) -> VerdictResult:
        original_claim = claim or None
        explicit_claim = normalize_claim(claim)

        async with self._client() as client:
            with performance_timer("credential_exchange", logger=self.logger):
                token = await fetch_access_token(
                    client, self.settings.service_account, self.settings.google.scope
                )
            await self.job_store.update(job_id, progress=PROGRESS_AUTHENTICATED)

            media: Optional[MediaAnalysis] = None
            ocr: Optional[OcrResult] = None
            if media_url:
                with performance_timer("media_and_ocr", logger=self.logger):
                    media, ocr = await self._analyze_media(client, media_url, platform)
            await self.job_store.update(job_id, progress=PROGRESS_MEDIA_DONE)

            effective_claim = explicit_claim or normalize_claim(ocr.text if ocr else None)

            outcome: Optional[VerificationOutcome] = None
            if effective_claim:
                verifier = ClaimVerifier(
                    client, self.settings.google, self.settings.service_account, self.tiers
                )
                with performance_timer("claim_verification", logger=self.logger):
                    outcome = await verifier.verify(effective_claim, token, media)
                if outcome is None:
                    self.logger.warning("Verification unavailable, defaulting to UNVERIFIED")
            else:
                self.logger.warning("No claim text and no OCR text, skipping verification")
            await self.job_store.update(job_id, progress=PROGRESS_VERIFIED)

        parsed: ParsedVerdict = parse_verdict(outcome.raw_text if outcome else None)
        await self.job_store.update(job_id, progress=PROGRESS_PARSED)

        sources = merge_sources(
            parsed.sources, outcome.grounding_sources if outcome else [], self.tiers
        )
        confidence = calculate_confidence(
            source_agreement(sources),
            source_quality(sources),
            parsed.confidence,
            media.authenticity_score if media else None,
        )

        return VerdictResult(
            analysis_id=job_id,
            input_type=input_type_for(explicit_claim, media, media_url),
            claim=effective_claim or None,
            original_claim=original_claim,
            is_question=is_question(effective_claim),
            verdict=VerdictLabel.coerce(parsed.verdict),
            explanation=parsed.explanation,
            confidence=confidence.score,
            confidence_breakdown=confidence.breakdown,
            recommendation=confidence.recommendation,
            sources=sources,
            search_queries=outcome.search_queries if outcome else [],
            media_analysis=media,
            text_extraction=ocr,
        )

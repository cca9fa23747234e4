"""
Kaeva fact-check pipeline package.

Exposes the orchestrator and the job stores it writes progress to.
"""

from kaeva.pipeline.factcheck_pipeline import FactCheckPipeline, merge_sources
from kaeva.pipeline.job_store import JobStore, MemoryJobStore, RedisJobStore, build_job_store

__all__ = [
    "FactCheckPipeline",
    "JobStore",
    "MemoryJobStore",
    "RedisJobStore",
    "build_job_store",
    "merge_sources",
]

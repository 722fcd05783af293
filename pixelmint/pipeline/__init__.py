# pixelmint/pipeline/__init__.py
"""
Publication pipeline.

Turns a raster snapshot into an uploaded image, an uploaded description
record and a committed registration, reporting each phase as it goes.

Example:
    pipeline = PublicationPipeline(
        asset_publisher=StoreAssetPublisher(store),
        record_publisher=StoreRecordPublisher(store),
        committer=LedgerCommitter(ledger),
        identity=provider,
        config=PipelineConfig.from_file("publish.yaml"),
    )
    result = await pipeline.run(raster)
"""

from .config import PipelineConfig
from .state import (
    Failure,
    Phase,
    PhaseEvent,
    PipelineAttempt,
    PublicationResult,
    RegistrationConfirmation,
    STATUS_MESSAGES,
    Success,
    TRANSITIONS,
)
from .orchestrator import PublicationPipeline

__all__ = [
    "PipelineConfig",
    "Failure",
    "Phase",
    "PhaseEvent",
    "PipelineAttempt",
    "PublicationResult",
    "RegistrationConfirmation",
    "STATUS_MESSAGES",
    "Success",
    "TRANSITIONS",
    "PublicationPipeline",
]

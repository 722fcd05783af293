# pixelmint/pipeline/orchestrator.py
"""
Publication orchestrator.

Drives one attempt through the phases in order:

    IDLE -> RENDERING -> CONNECTING -> UPLOADING_ASSET
      -> AWAITING_ASSET_PROPAGATION -> PREPARING_RECORD
      -> UPLOADING_RECORD (1..N) -> AWAITING_RECORD_PROPAGATION
      -> COMMITTING -> SUCCEEDED

Each phase has a handler that does the phase's work and returns the next
phase. Any exception ends the attempt in FAILED with a classified error.
Only the metadata upload is retried; the image upload and the commit are
single-shot.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Set

from ..encoder import EncodedAsset, Encoder
from ..errors import (
    AuthorizationError,
    CommitError,
    EncodingError,
    PublicationError,
    PublishError,
)
from ..identity import IdentityProvider, SigningCapability
from ..ledger import CommitReceipt, RegistrationCommitter, RegistrationTerms
from ..raster import Raster
from ..record import Creator, DescriptionRecord, random_name
from ..storage.publishers import AssetPublisher, RecordPublisher
from .config import PipelineConfig
from .state import (
    STATUS_MESSAGES,
    Failure,
    Phase,
    PhaseEvent,
    PipelineAttempt,
    PublicationResult,
    RegistrationConfirmation,
    Success,
)

logger = logging.getLogger(__name__)

EventCallback = Callable[[PhaseEvent], None]
OutcomeCallback = Callable[[PublicationResult], None]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class _Run:
    """Values produced so far by one attempt; each is set exactly once."""
    attempt: PipelineAttempt
    snapshot: Raster
    name: str = ""
    asset: Optional[EncodedAsset] = None
    capability: Optional[SigningCapability] = None
    asset_locator: Optional[str] = None
    record: Optional[DescriptionRecord] = None
    record_locator: Optional[str] = None
    receipt: Optional[CommitReceipt] = None


class PublicationPipeline:
    """
    Publishes a raster as an image, a description record and a registration.

    Args:
        asset_publisher: Uploads the encoded image
        record_publisher: Uploads the description record
        committer: Commits the registration
        identity: Provides authorization for the commit
        config: Timing and content policy
        encoder: Raster encoder (built from config if omitted)
        sleep: Awaitable delay, replaceable in tests
        name_factory: Produces the asset name from a length
        on_event: Called with every PhaseEvent
        on_outcome: Called once with the terminal result
    """

    def __init__(
        self,
        asset_publisher: AssetPublisher,
        record_publisher: RecordPublisher,
        committer: RegistrationCommitter,
        identity: IdentityProvider,
        config: PipelineConfig = None,
        encoder: Encoder = None,
        sleep: Sleep = None,
        name_factory: Callable[[int], str] = None,
        on_event: EventCallback = None,
        on_outcome: OutcomeCallback = None,
    ):
        self.asset_publisher = asset_publisher
        self.record_publisher = record_publisher
        self.committer = committer
        self.identity = identity
        self.config = config or PipelineConfig()
        self.encoder = encoder or Encoder(scale=self.config.scale, background=self.config.background)
        self._sleep = sleep or asyncio.sleep
        self._name_factory = name_factory or random_name
        self._on_event = on_event
        self._on_outcome = on_outcome
        self._inflight: Set[asyncio.Task] = set()

        self._handlers: Dict[Phase, Callable[[_Run], Awaitable[Phase]]] = {
            Phase.IDLE: self._check_identity,
            Phase.RENDERING: self._render,
            Phase.CONNECTING: self._connect,
            Phase.UPLOADING_ASSET: self._upload_asset,
            Phase.AWAITING_ASSET_PROPAGATION: self._await_asset_propagation,
            Phase.PREPARING_RECORD: self._prepare_record,
            Phase.UPLOADING_RECORD: self._upload_record,
            Phase.AWAITING_RECORD_PROPAGATION: self._await_record_propagation,
            Phase.COMMITTING: self._commit,
        }

    async def run(self, raster: Raster) -> PublicationResult:
        """
        Run one publication attempt to a terminal outcome.

        The raster is snapshotted immediately; later edits do not affect
        the attempt. Cancelling the caller does not abort the attempt,
        since uploads cannot be undone: it keeps running in the background.
        """
        run = _Run(attempt=PipelineAttempt(), snapshot=raster.snapshot())
        task = asyncio.ensure_future(self._drive(run))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return await asyncio.shield(task)

    async def _drive(self, run: _Run) -> PublicationResult:
        attempt = run.attempt
        self._publish(attempt.start())
        self._log(run, "start")

        while not attempt.phase.terminal:
            phase = attempt.phase
            try:
                next_phase = await self._handlers[phase](run)
            except Exception as e:
                error = self._classify(run, phase, e)
                return self._fail(run, error)
            self._enter(run, next_phase)

        confirmation = RegistrationConfirmation(
            name=run.name,
            registration_id=run.receipt.registration_id,
            image=run.asset_locator,
            record=run.record_locator,
        )
        self._log(run, f"success registration={confirmation.registration_id}")
        result = Success(confirmation=confirmation, attempt=attempt)
        self._report_outcome(result)
        return result

    # Phase handlers

    async def _check_identity(self, run: _Run) -> Phase:
        if not self.identity.is_authorized():
            raise AuthorizationError("Identity not connected")
        return Phase.RENDERING

    async def _render(self, run: _Run) -> Phase:
        run.name = self._name_factory(self.config.name_length)
        self._log(run, f"name={run.name}")
        run.asset = await asyncio.to_thread(self.encoder.encode, run.snapshot, run.name)
        self._log(run, f"complete, {run.asset.size} bytes {run.asset.media_type}")
        return Phase.CONNECTING

    async def _connect(self, run: _Run) -> Phase:
        run.capability = self.identity.signing_capability()
        self._log(run, f"identity={run.capability.address[:12]}...")
        return Phase.UPLOADING_ASSET

    async def _upload_asset(self, run: _Run) -> Phase:
        # Never upload a payload whose signature does not match its type
        run.asset.validate()
        self._log(run, f"uploading {run.asset.filename} ({run.asset.size} bytes)")
        try:
            locator = await self.asset_publisher.publish(run.asset)
        except Exception as e:
            raise PublishError(f"Image upload failed: {e}", stage="asset") from e
        if not locator:
            raise PublishError("Image upload failed: storage returned no locator", stage="asset")
        run.asset_locator = locator
        self._log(run, f"success uri={locator}")
        return Phase.AWAITING_ASSET_PROPAGATION

    async def _await_asset_propagation(self, run: _Run) -> Phase:
        await self._wait(run, self.config.asset_propagation_delay)
        return Phase.PREPARING_RECORD

    async def _prepare_record(self, run: _Run) -> Phase:
        run.record = DescriptionRecord.for_asset(
            name=run.name,
            asset_locator=run.asset_locator,
            symbol=self.config.symbol,
            description=self.config.description,
            media_type=run.asset.media_type,
            extension=run.asset.extension,
            seller_fee_basis_points=self.config.seller_fee_basis_points,
            creators=[Creator(address=run.capability.address, share=100)],
        )
        self._log(run, f"record image={run.record.image}")
        return Phase.UPLOADING_RECORD

    async def _upload_record(self, run: _Run) -> Phase:
        attempt_no = run.attempt.record_attempts
        max_attempts = self.config.max_record_attempts
        self._log(run, f"attempt {attempt_no}/{max_attempts}")
        try:
            locator = await self.record_publisher.publish(run.record)
            if not locator:
                raise ValueError("storage returned no locator")
        except Exception as e:
            logger.warning(f"[publish] {run.attempt.attempt_id} metadata upload attempt {attempt_no} failed: {e}")
            run.attempt.note(f"attempt {attempt_no} failed: {e}")
            if attempt_no >= max_attempts:
                raise PublishError(
                    f"Metadata upload failed after {attempt_no} attempts: {e}",
                    stage="record",
                    attempts=attempt_no,
                ) from e
            await self._sleep(self.config.backoff(attempt_no))
            return Phase.UPLOADING_RECORD

        run.record_locator = locator
        self._log(run, f"success uri={locator} attempts={attempt_no}")
        return Phase.AWAITING_RECORD_PROPAGATION

    async def _await_record_propagation(self, run: _Run) -> Phase:
        await self._wait(run, self.config.record_propagation_delay)
        return Phase.COMMITTING

    async def _commit(self, run: _Run) -> Phase:
        terms = RegistrationTerms(
            name=run.name,
            symbol=self.config.symbol,
            seller_fee_basis_points=self.config.seller_fee_basis_points,
            creators=[Creator(address=run.capability.address, share=100)],
            is_mutable=self.config.is_mutable,
        )
        # The record, not the image, is the registration target
        receipt = await self.committer.commit(run.record_locator, run.capability, terms)
        if receipt.record_locator != run.record_locator:
            raise CommitError(
                f"Ledger acknowledged {receipt.record_locator}, expected {run.record_locator}"
            )
        run.receipt = receipt
        self._log(run, f"registration={receipt.registration_id}")
        return Phase.SUCCEEDED

    # Helpers

    async def _wait(self, run: _Run, delay: float):
        self._log(run, f"delay {delay:g}s start")
        await self._sleep(delay)
        self._log(run, "delay complete")

    def _enter(self, run: _Run, phase: Phase):
        attempt = run.attempt
        if phase is Phase.UPLOADING_RECORD:
            attempt.record_attempts += 1
            message = STATUS_MESSAGES[phase].format(
                attempt=attempt.record_attempts,
                max_attempts=self.config.max_record_attempts,
            )
            event = attempt.enter(phase, message, attempt=attempt.record_attempts)
        elif phase is Phase.SUCCEEDED:
            event = attempt.enter(phase, STATUS_MESSAGES[phase].format(name=run.name))
        else:
            event = attempt.enter(phase, STATUS_MESSAGES[phase])
        self._publish(event)

    def _classify(self, run: _Run, phase: Phase, error: Exception) -> PublicationError:
        """Map an exception raised in `phase` onto the error taxonomy."""
        if isinstance(error, PublicationError):
            return error
        message = str(error) or type(error).__name__
        if phase in (Phase.IDLE, Phase.CONNECTING):
            classified = AuthorizationError(message)
        elif phase is Phase.RENDERING:
            classified = EncodingError(message)
        elif phase is Phase.UPLOADING_ASSET:
            classified = PublishError(message, stage="asset")
        elif phase in (Phase.PREPARING_RECORD, Phase.UPLOADING_RECORD):
            classified = PublishError(message, stage="record", attempts=run.attempt.record_attempts)
        elif phase is Phase.COMMITTING:
            classified = CommitError(message)
        else:
            classified = PublicationError(message, stage=phase.tag)
        classified.__cause__ = error
        return classified

    def _fail(self, run: _Run, error: PublicationError) -> Failure:
        attempt = run.attempt
        failed_in = attempt.phase
        logger.error(
            f"[publish] {attempt.attempt_id} failed in phase={failed_in.tag} "
            f"stage={error.stage}: {error.message}"
        )
        attempt.note(f"error stage={error.stage}: {error.message}")
        self._publish(attempt.enter(Phase.FAILED, f"{STATUS_MESSAGES[Phase.FAILED]}: {error.message}"))
        result = Failure(error=error, attempt=attempt)
        self._report_outcome(result)
        return result

    def _log(self, run: _Run, message: str):
        attempt = run.attempt
        logger.info(f"[publish] {attempt.attempt_id} phase={attempt.phase.tag} {message}")
        attempt.note(message)

    def _publish(self, event: PhaseEvent):
        if self._on_event:
            try:
                self._on_event(event)
            except Exception as e:
                logger.warning(f"Status callback error: {e}")

    def _report_outcome(self, result: PublicationResult):
        if self._on_outcome:
            try:
                self._on_outcome(result)
            except Exception as e:
                logger.warning(f"Outcome callback error: {e}")

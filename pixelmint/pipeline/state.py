# pixelmint/pipeline/state.py
"""
Publication state machine and run-scoped attempt state.

Phases run in strict order; FAILED is reachable from any phase that is
not terminal. Every transition appends a PhaseEvent carrying the status
message for that phase.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Optional, Union

from ..errors import PublicationError


class Phase(Enum):
    IDLE = auto()
    RENDERING = auto()
    CONNECTING = auto()
    UPLOADING_ASSET = auto()
    AWAITING_ASSET_PROPAGATION = auto()
    PREPARING_RECORD = auto()
    UPLOADING_RECORD = auto()
    AWAITING_RECORD_PROPAGATION = auto()
    COMMITTING = auto()
    SUCCEEDED = auto()
    FAILED = auto()

    @property
    def terminal(self) -> bool:
        return self in (Phase.SUCCEEDED, Phase.FAILED)

    @property
    def tag(self) -> str:
        return self.name.lower().replace("_", "-")


# Forward edges; FAILED is added for every non-terminal phase below
_FORWARD: Dict[Phase, FrozenSet[Phase]] = {
    Phase.IDLE: frozenset({Phase.RENDERING}),
    Phase.RENDERING: frozenset({Phase.CONNECTING}),
    Phase.CONNECTING: frozenset({Phase.UPLOADING_ASSET}),
    Phase.UPLOADING_ASSET: frozenset({Phase.AWAITING_ASSET_PROPAGATION}),
    Phase.AWAITING_ASSET_PROPAGATION: frozenset({Phase.PREPARING_RECORD}),
    Phase.PREPARING_RECORD: frozenset({Phase.UPLOADING_RECORD}),
    # Re-entered once per retry
    Phase.UPLOADING_RECORD: frozenset({Phase.UPLOADING_RECORD, Phase.AWAITING_RECORD_PROPAGATION}),
    Phase.AWAITING_RECORD_PROPAGATION: frozenset({Phase.COMMITTING}),
    Phase.COMMITTING: frozenset({Phase.SUCCEEDED}),
    Phase.SUCCEEDED: frozenset(),
    Phase.FAILED: frozenset(),
}

TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    phase: targets if phase.terminal else targets | {Phase.FAILED}
    for phase, targets in _FORWARD.items()
}

STATUS_MESSAGES: Dict[Phase, str] = {
    Phase.IDLE: "Starting publication...",
    Phase.RENDERING: "Rendering your pixel art...",
    Phase.CONNECTING: "Connecting to network...",
    Phase.UPLOADING_ASSET: "Uploading image...",
    Phase.AWAITING_ASSET_PROPAGATION: "Waiting for image propagation...",
    Phase.PREPARING_RECORD: "Preparing metadata...",
    Phase.UPLOADING_RECORD: "Uploading metadata ({attempt}/{max_attempts})...",
    Phase.AWAITING_RECORD_PROPAGATION: "Waiting for metadata propagation...",
    Phase.COMMITTING: "Sending registration... Approve with your identity",
    Phase.SUCCEEDED: "Published {name}",
    Phase.FAILED: "Publication failed",
}


def can_transition(current: Phase, target: Phase) -> bool:
    return target in TRANSITIONS[current]


@dataclass(frozen=True)
class PhaseEvent:
    """A status update emitted on entering a phase."""
    phase: Phase
    message: str
    timestamp: float = field(default_factory=time.time)
    attempt: Optional[int] = None


@dataclass(frozen=True)
class RegistrationConfirmation:
    """
    The artifact of a successful run.

    Attributes:
        name: Human name of the asset
        registration_id: Identifier assigned by the ledger
        image: Locator of the uploaded image
        record: Locator of the description record (the registration target)
    """
    name: str
    registration_id: str
    image: str
    record: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "registration_id": self.registration_id,
            "image": self.image,
            "record": self.record,
        }


@dataclass
class PipelineAttempt:
    """
    Run-scoped state for one publication attempt. Never persisted.

    Attributes:
        attempt_id: Short identifier used to tag log lines
        phase: Current phase
        record_attempts: Metadata uploads tried so far
        events: Status updates, in order (append-only)
        log: Diagnostic lines tagged by phase
    """
    attempt_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    phase: Phase = Phase.IDLE
    record_attempts: int = 0
    events: List[PhaseEvent] = field(default_factory=list)
    log: List[str] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    def start(self) -> PhaseEvent:
        """Record the initial IDLE event."""
        if self.events:
            raise RuntimeError(f"Attempt {self.attempt_id} already started")
        event = PhaseEvent(phase=Phase.IDLE, message=STATUS_MESSAGES[Phase.IDLE])
        self.events.append(event)
        return event

    def enter(self, phase: Phase, message: str, attempt: Optional[int] = None) -> PhaseEvent:
        """Move to `phase`; raises RuntimeError on an illegal transition."""
        if not can_transition(self.phase, phase):
            raise RuntimeError(f"Illegal transition {self.phase.name} -> {phase.name}")
        self.phase = phase
        if phase.terminal:
            self.finished_at = time.time()
        event = PhaseEvent(phase=phase, message=message, attempt=attempt)
        self.events.append(event)
        return event

    def note(self, line: str):
        self.log.append(f"[{self.phase.tag}] {line}")

    @property
    def phases(self) -> List[Phase]:
        return [e.phase for e in self.events]

    @property
    def elapsed(self) -> float:
        return (self.finished_at or time.time()) - self.started_at


@dataclass(frozen=True)
class Success:
    confirmation: RegistrationConfirmation
    attempt: PipelineAttempt

    ok = True

    @property
    def message(self) -> str:
        return f"Published {self.confirmation.name} ({self.confirmation.registration_id})"


@dataclass(frozen=True)
class Failure:
    error: PublicationError
    attempt: PipelineAttempt

    ok = False

    @property
    def stage(self) -> str:
        return self.error.stage

    @property
    def message(self) -> str:
        return self.error.describe()


PublicationResult = Union[Success, Failure]

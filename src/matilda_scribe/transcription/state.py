"""Observable transcription state.

Services own one TranscriptionState each and are its only writer. UI code
subscribes with a listener and receives a snapshot plus the names of the fields
that changed.
"""

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass

from .errors import STTError
from .types import TranscriptionPhase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriptionSnapshot:
    current_text: str = ""
    last_transcription: str = ""
    is_transcribing: bool = False
    is_streaming_active: bool = False
    phase: TranscriptionPhase = TranscriptionPhase.IDLE
    error: STTError | None = None


StateListener = Callable[[TranscriptionSnapshot, frozenset[str]], None]

_FIELDS = frozenset(f.name for f in dataclasses.fields(TranscriptionSnapshot))


class TranscriptionState:
    """State container with an explicit change-notification channel."""

    def __init__(self) -> None:
        self._snapshot = TranscriptionSnapshot()
        self._listeners: dict[int, StateListener] = {}
        self._next_token = 0

    @property
    def snapshot(self) -> TranscriptionSnapshot:
        return self._snapshot

    @property
    def current_text(self) -> str:
        return self._snapshot.current_text

    @property
    def last_transcription(self) -> str:
        return self._snapshot.last_transcription

    @property
    def is_transcribing(self) -> bool:
        return self._snapshot.is_transcribing

    @property
    def is_streaming_active(self) -> bool:
        return self._snapshot.is_streaming_active

    @property
    def phase(self) -> TranscriptionPhase:
        return self._snapshot.phase

    @property
    def error(self) -> STTError | None:
        return self._snapshot.error

    def subscribe(self, listener: StateListener) -> int:
        """Register a listener; returns the token needed to unsubscribe."""
        token = self._next_token
        self._next_token += 1
        self._listeners[token] = listener
        return token

    def unsubscribe(self, token: int) -> bool:
        return self._listeners.pop(token, None) is not None

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def update(self, **changes) -> frozenset[str]:
        """Apply field changes and notify listeners of the ones that differ."""
        unknown = set(changes) - _FIELDS
        if unknown:
            raise AttributeError(f"Unknown state fields: {sorted(unknown)}")

        changed = frozenset(
            name for name, value in changes.items() if getattr(self._snapshot, name) != value
        )
        if not changed:
            return changed

        self._snapshot = dataclasses.replace(self._snapshot, **{name: changes[name] for name in changed})

        for listener in list(self._listeners.values()):
            try:
                listener(self._snapshot, changed)
            except Exception as e:
                logger.error(f"Error in state listener: {e}")
        return changed


__all__ = ["TranscriptionSnapshot", "TranscriptionState", "StateListener"]

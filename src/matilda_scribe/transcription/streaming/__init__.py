"""Realtime streaming pipeline.

Public API:
- StreamingTranscriptionService: Orchestrates one realtime attempt at a time
- AudioStreamingQueue: Confirmation-gated, ordered audio forwarding
- RealtimeSession: Provider-neutral live session
- PartialResultsManager: Cumulative hypothesis merging
"""

from .partials import PartialResultsManager
from .queue import AudioStreamingQueue, QueueState
from .session import RealtimeSession
from .service import StreamingTranscriptionService

__all__ = [
    "StreamingTranscriptionService",
    "AudioStreamingQueue",
    "QueueState",
    "RealtimeSession",
    "PartialResultsManager",
]

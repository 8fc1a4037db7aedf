"""Partial results merging.

Every PartialChunk carries the full cumulative hypothesis, so merging is a
replace: the live text becomes the newest chunk's text. The final chunk also
freezes that text; later chunks are ignored.
"""

import logging

from ..types import PartialChunk

logger = logging.getLogger(__name__)


class PartialResultsManager:
    """Turns a stream of cumulative hypotheses into one stable transcript."""

    def __init__(self) -> None:
        self._live_text = ""
        self._final_text: str | None = None
        self._chunk_count = 0

    def reset(self) -> None:
        self._live_text = ""
        self._final_text = None
        self._chunk_count = 0

    def process_partial_result(self, chunk: PartialChunk) -> bool:
        """Merge a chunk. Returns False when it was ignored after finalization."""
        if self._final_text is not None:
            logger.debug("Ignoring partial result received after finalization")
            return False

        self._live_text = chunk.text
        self._chunk_count += 1
        if chunk.is_final:
            self._final_text = chunk.text
            logger.debug(f"Transcript finalized after {self._chunk_count} chunks")
        return True

    def get_complete_transcription(self) -> str:
        return self._live_text

    def get_final_transcription(self) -> str:
        """Frozen final text, or "" while the session is still running."""
        return self._final_text or ""

    @property
    def is_finalized(self) -> bool:
        return self._final_text is not None

    @property
    def chunk_count(self) -> int:
        return self._chunk_count


__all__ = ["PartialResultsManager"]

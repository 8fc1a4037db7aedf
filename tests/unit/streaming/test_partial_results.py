"""Tests for PartialResultsManager merging."""

from matilda_scribe.transcription.streaming.partials import PartialResultsManager
from matilda_scribe.transcription.types import PartialChunk


class TestPartialResultsManager:
    def test_live_text_replaced_by_each_chunk(self):
        manager = PartialResultsManager()
        manager.process_partial_result(PartialChunk("Hel"))
        assert manager.get_complete_transcription() == "Hel"
        manager.process_partial_result(PartialChunk("Hello"))
        assert manager.get_complete_transcription() == "Hello"
        assert manager.get_final_transcription() == ""
        assert not manager.is_finalized

    def test_final_chunk_freezes_transcript(self):
        manager = PartialResultsManager()
        for chunk in (
            PartialChunk("Hel"),
            PartialChunk("Hello"),
            PartialChunk("Hello world", is_final=True),
        ):
            manager.process_partial_result(chunk)

        assert manager.get_complete_transcription() == manager.get_final_transcription() == "Hello world"
        # Repeated reads are stable
        assert manager.get_final_transcription() == "Hello world"
        assert manager.get_complete_transcription() == "Hello world"
        assert manager.chunk_count == 3

    def test_chunks_after_final_are_ignored(self):
        manager = PartialResultsManager()
        manager.process_partial_result(PartialChunk("Done", is_final=True))

        applied = manager.process_partial_result(PartialChunk("Done and more"))

        assert applied is False
        assert manager.get_complete_transcription() == "Done"
        assert manager.get_final_transcription() == "Done"

    def test_reset_clears_state(self):
        manager = PartialResultsManager()
        manager.process_partial_result(PartialChunk("Old", is_final=True))

        manager.reset()

        assert manager.get_complete_transcription() == ""
        assert manager.get_final_transcription() == ""
        assert manager.chunk_count == 0
        assert manager.process_partial_result(PartialChunk("New")) is True

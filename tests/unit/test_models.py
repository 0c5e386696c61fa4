"""Unit tests for the data models."""

from dataclasses import replace
from pathlib import Path

import pytest

from videoscribe.models import MediaReference, ViewState, TranscriptionResult


@pytest.mark.unit
class TestMediaReference:
    
    def test_from_path_builds_file_uri(self, sample_video):
        ref = MediaReference.from_path(sample_video)
        
        assert ref.uri.startswith("file://")
        assert ref.is_local
        assert Path(ref.location) == sample_video.resolve()
    
    def test_parse_accepts_paths_and_uris(self, sample_video):
        from_path = MediaReference.parse(str(sample_video))
        from_uri = MediaReference.parse(from_path.uri)
        
        assert from_path == from_uri
        assert MediaReference.parse(from_uri) is from_uri
    
    def test_readability(self, sample_video, temp_data_dir):
        assert MediaReference.from_path(sample_video).is_readable()
        assert not MediaReference.from_path(Path(temp_data_dir) / "missing.mp4").is_readable()
    
    def test_remote_reference_passes_through(self):
        ref = MediaReference.parse("https://example.com/clip.mp4")
        
        assert not ref.is_local
        assert ref.location == "https://example.com/clip.mp4"


@pytest.mark.unit
class TestViewState:
    
    def test_defaults(self):
        state = ViewState()
        
        assert state.video is None
        assert state.transcript == ""
        assert state.summary == ""
        assert state.create_summary is True
    
    def test_replace_returns_new_snapshot(self):
        state = ViewState()
        updated = replace(state, transcript="hello")
        
        assert state.transcript == ""
        assert updated.transcript == "hello"
        assert updated != state
    
    def test_result_defaults_to_empty_text(self):
        result = TranscriptionResult(completed=False)
        
        assert result.transcript == ""
        assert result.summary == ""

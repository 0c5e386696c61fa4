"""Pytest configuration and fixtures for VideoScribe tests."""

import asyncio
import logging
import tempfile
import threading
from concurrent.futures import Future
from pathlib import Path
from unittest.mock import MagicMock

import ffmpeg
import pytest
from aiohttp import web
from pubsub import pub

from videoscribe.errors import TransformFailure
from videoscribe.models.transcription import TranscriptionResult
from videoscribe.services.state_controller import StateController
from videoscribe.services.state_publisher import StatePublisher, STATE_TOPIC, NOTICE_TOPIC
from videoscribe.storage.preference_store import PreferenceStore


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line("markers", "integration: tests wiring real components together")


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop listeners left behind by a test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_video(temp_data_dir):
    """A readable file standing in for a picked video."""
    video_path = Path(temp_data_dir) / "picked" / "holiday clip.mov"
    video_path.parent.mkdir()
    video_path.write_bytes(b"\x00\x00\x00\x18ftypqt  " + b"\x00" * 64)
    return video_path


@pytest.fixture
def store(temp_data_dir):
    return PreferenceStore(Path(temp_data_dir) / "preferences.json")


@pytest.fixture
def publisher():
    return StatePublisher()


class StateRecorder:
    """Collects everything published on the state and notice topics."""

    def __init__(self):
        self.states = []
        self.notices = []
        pub.subscribe(self.on_state, STATE_TOPIC)
        pub.subscribe(self.on_notice, NOTICE_TOPIC)

    def on_state(self, state):
        self.states.append(state)

    def on_notice(self, notice):
        self.notices.append(notice)

    @property
    def messages(self):
        return [notice.message for notice in self.notices]


@pytest.fixture
def recorder(publisher):
    return StateRecorder()


class FakeTransformer:
    """Stands in for MediaTransformer; jobs complete inline unless told otherwise."""

    def __init__(self, output_dir):
        self.video_path = Path(output_dir) / "video.mp4"
        self.audio_path = Path(output_dir) / "audio.m4a"
        self.auto_complete = True
        self.fail = False
        self.jobs = []
        self.completed = set()

    def normalize_to_local_copy(self, source, on_success, on_failure=None):
        self._add_job("normalize", source, self.video_path, on_success, on_failure)

    def extract_audio(self, source, on_success, on_failure=None):
        self._add_job("extract_audio", source, self.audio_path, on_success, on_failure)

    def _add_job(self, kind, source, target, on_success, on_failure):
        self.jobs.append((kind, source, target, on_success, on_failure))
        if self.auto_complete:
            self.complete(len(self.jobs) - 1)

    def complete(self, index=-1):
        kind, source, target, on_success, on_failure = self.jobs[index]
        self.completed.add(index % len(self.jobs))
        if self.fail:
            on_failure(TransformFailure(kind, "simulated failure"))
            return
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"transformed " + kind.encode())
        on_success(target)

    def wait(self, timeout=None):
        return len(self.completed) == len(self.jobs)

    def kinds(self):
        return [job[0] for job in self.jobs]


@pytest.fixture
def fake_transformer(temp_data_dir):
    return FakeTransformer(Path(temp_data_dir) / "media")


class FakeClient:
    """Stands in for TranscriptionClient with canned keys and poll results."""

    def __init__(self):
        self.key = "abc123"
        self.submit_error = None
        self.poll_error = None
        self.results = [TranscriptionResult(completed=False)]
        self.submissions = []
        self.polls = []

    def submit(self, audio_file, model, summarize):
        self.submissions.append({"audio_file": Path(audio_file), "model": model, "summarize": summarize})
        future = Future()
        if self.submit_error:
            future.set_exception(self.submit_error)
        else:
            future.set_result(self.key)
        return future

    def poll(self, key):
        self.polls.append(key)
        if self.poll_error:
            raise self.poll_error
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def controller(store, fake_transformer, fake_client, publisher):
    return StateController(store, fake_transformer, fake_client, publisher, default_model="small")


class FfmpegStub:
    """Replaces the ffmpeg module: records commands and writes fake outputs."""

    Error = ffmpeg.Error

    def __init__(self):
        self.calls = []
        self.gates = {}
        self.failures = {}
        self.missing_binary = False

    def input(self, source):
        node = MagicMock()

        def output(target, **kwargs):
            self.calls.append({"source": source, "target": target, "kwargs": kwargs})
            out = MagicMock()
            out.overwrite_output.return_value.run.side_effect = lambda **run_kwargs: self._run(source, target)
            return out

        node.output.side_effect = output
        return node

    def block(self, source):
        """Hold jobs reading ``source`` until the returned event is set."""
        gate = threading.Event()
        self.gates[source] = gate
        return gate

    def _run(self, source, target):
        gate = self.gates.get(source)
        if gate is not None:
            gate.wait(5)
        if self.missing_binary:
            raise FileNotFoundError(2, "No such file or directory", "ffmpeg")
        if source in self.failures:
            raise ffmpeg.Error("ffmpeg", b"", self.failures[source])
        Path(target).write_bytes(b"encoded from " + source.encode())
        return b"", b""


@pytest.fixture
def ffmpeg_stub(monkeypatch):
    stub = FfmpegStub()
    monkeypatch.setattr("videoscribe.media.transformer.ffmpeg", stub)
    return stub


class FakeTranscriptionServer:
    """In-process aiohttp app speaking the transcription service API."""

    def __init__(self):
        self.next_key = "abc123"
        self.results = {}
        self.uploads = []
        self.polls = []
        self.error_status = None
        self.raw_body = None
        self.port = None
        self.loop = None
        self.thread = None
        self._ready = threading.Event()

    async def handle_transcribe(self, request):
        if self.error_status:
            return web.Response(status=self.error_status, text="model not available")
        if self.raw_body is not None:
            return web.Response(text=self.raw_body)
        form = await request.post()
        field = form["audio"]
        self.uploads.append({
            "model": request.query.get("model"),
            "summarize": request.query.get("summarize"),
            "filename": field.filename,
            "content_type": field.content_type,
            "data": field.file.read(),
        })
        return web.json_response({"key": self.next_key})

    async def handle_check(self, request):
        key = request.query.get("transcriptionkey")
        self.polls.append(key)
        if self.error_status:
            return web.Response(status=self.error_status, text="internal error")
        if self.raw_body is not None:
            return web.Response(text=self.raw_body)
        return web.json_response(self.results.get(key, {"completed": False, "transcript": None, "summary": None}))

    def start(self):
        self.thread = threading.Thread(target=self._serve, name="fake_transcription_server", daemon=True)
        self.thread.start()
        if not self._ready.wait(5):
            raise RuntimeError("Fake transcription server did not start")

    def _serve(self):
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

        app = web.Application()
        app.router.add_post("/transcribe", self.handle_transcribe)
        app.router.add_get("/checkTranscription", self.handle_check)
        runner = web.AppRunner(app)
        self.loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", 0)
        self.loop.run_until_complete(site.start())
        self.port = runner.addresses[0][1]
        self._ready.set()

        try:
            self.loop.run_forever()
        finally:
            self.loop.run_until_complete(runner.cleanup())
            self.loop.close()

    def stop(self):
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(5)


@pytest.fixture
def fake_server():
    server = FakeTranscriptionServer()
    server.start()
    yield server
    server.stop()

"""Application state controller owning the canonical view state.

The controller mediates between the persistent store, the media transform
jobs, the transcription client and the presentation layer. Commands return
quickly; transform and upload work finishes on background threads and folds
its result back into the view state through continuations.

Every continuation carries the generation that was current when its job was
started. Selecting a new video or resetting bumps the generations, so results
of superseded jobs are logged and dropped instead of applied.
"""

import logging
import threading
import time
from dataclasses import replace
from functools import partial
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..errors import (
    InvalidModelError,
    StorageUnavailable,
    TransformFailure,
    TranscriptionServiceError,
)
from ..media.transformer import MediaTransformer
from ..models.events import NoticeLevel
from ..models.media import MediaReference
from ..models.state import Preferences, Stage, ViewState
from ..models.transcription import MODELS
from ..storage.preference_store import (
    PreferenceStore,
    VIDEO_LOCATION,
    TRANSCRIPT_TEXT,
    SUMMARY_TEXT,
    CREATE_SUMMARY_PREFERENCE,
    PENDING_POLLING_KEY,
    PENDING_SUMMARIZE,
)
from ..transcription.client import TranscriptionClient
from .state_publisher import StatePublisher

logger = logging.getLogger(__name__)

class StateController:
    """Owns the ViewState and exposes the user commands."""

    def __init__(self,
                 store: PreferenceStore,
                 transformer: MediaTransformer,
                 client: TranscriptionClient,
                 publisher: StatePublisher,
                 default_model: str = "small"):
        """Initialize the controller with default state.

        Args:
            store: Persistent key/value store
            transformer: Media transform job runner
            client: Transcription service client
            publisher: Publisher for state snapshots and notices
            default_model: Model used when start_transcription gets none
        """
        self.store = store
        self.transformer = transformer
        self.client = client
        self.publisher = publisher
        self.default_model = default_model

        self.lock = threading.RLock()
        self._state = ViewState()
        self._preferences = Preferences()

        # Generations invalidate continuations of superseded jobs
        self._video_generation = 0
        self._request_generation = 0
        self._submission_in_flight = False

        # Uploads not yet answered by the service, for wait_for_pending()
        self._pending_uploads = 0
        self._idle = threading.Condition(self.lock)

        logger.info(f"StateController initialized (default model: {default_model})")

    @property
    def state(self) -> ViewState:
        """Current view state snapshot."""
        with self.lock:
            return self._state

    @property
    def preferences(self) -> Preferences:
        """Preferences as read at the last command entry."""
        with self.lock:
            return self._preferences

    @property
    def pending_polling_key(self) -> str:
        return self.store.get(PENDING_POLLING_KEY, "")

    @property
    def stage(self) -> Stage:
        """Workflow position implied by the view state."""
        with self.lock:
            state = self._state
            in_flight = self._submission_in_flight

        if state.video is None:
            return Stage.NO_VIDEO
        if state.transcript:
            return Stage.HAS_SUMMARY if state.summary else Stage.HAS_TRANSCRIPT
        if in_flight or self.pending_polling_key:
            return Stage.AWAITING_RESULT
        return Stage.VIDEO_SELECTED

    def rehydrate(self, resume_pending: bool = True) -> ViewState:
        """Rebuild the view state from the store after a (re)start.

        Args:
            resume_pending: Check the job once if a polling key was left pending

        Returns:
            The rehydrated ViewState
        """
        logger.info("Rehydrating view state from store")
        preferences = self._refresh_preferences(publish=False)
        video_location = self.store.get(VIDEO_LOCATION, "")
        transcript = self.store.get(TRANSCRIPT_TEXT, "")
        summary = self.store.get(SUMMARY_TEXT, "")

        video = None
        if video_location:
            video = MediaReference.parse(video_location)
            if not video.is_readable():
                logger.warning(f"Stored video {video_location} is no longer readable")
                video = None

        # Results of a job for a video that is gone could never be shown
        if video is None and self.pending_polling_key:
            logger.warning("Dropping pending transcription, its video is no longer available")
            self._forget_pending_job()

        self._update(
            video=video,
            transcript=transcript,
            summary=summary,
            create_summary=preferences.create_summary,
        )

        if resume_pending and self.pending_polling_key:
            logger.info("Found pending transcription from a previous session, checking it")
            self.check_status()
        return self.state

    def select_video(self, ref: Union[str, Path, MediaReference]) -> bool:
        """Make a newly picked video current and start copying it locally.

        Any transcript and summary belong to the previous video, so they are
        cleared right away, together with a still pending polling key.

        Args:
            ref: URI or path of the picked video

        Returns:
            True if the video was accepted
        """
        video = MediaReference.parse(ref)
        logger.info(f"Video selected: {video.uri}")

        if not video.is_readable():
            logger.warning(f"Selected video cannot be opened: {video.uri}")
            self.publisher.publish_notice("The selected video could not be opened", NoticeLevel.ERROR)
            return False

        with self.lock:
            self._video_generation += 1
            self._request_generation += 1
            self._submission_in_flight = False
            video_generation = self._video_generation
            self._update(video=video, transcript="", summary="")

        self._persist({
            VIDEO_LOCATION: MediaReference.from_path(self.transformer.video_path).uri,
            TRANSCRIPT_TEXT: "",
            SUMMARY_TEXT: "",
        })
        self._forget_pending_job()

        self.transformer.normalize_to_local_copy(
            video,
            on_success=partial(self._on_video_normalized, video_generation),
            on_failure=partial(self._on_video_transform_failed, video_generation),
        )
        return True

    def set_create_summary(self, create_summary: bool) -> None:
        """Store the user's choice whether transcripts should be summarized."""
        logger.info(f"Summary preference set to {create_summary}")
        self._persist({CREATE_SUMMARY_PREFERENCE: create_summary})
        self._refresh_preferences()

    def start_transcription(self, model: Optional[str] = None, summarize: Optional[bool] = None) -> bool:
        """Extract the current video's audio and submit it for transcription.

        Returns before the upload happens; the polling key is stored once the
        service accepts the job and ``check_status`` picks it up from there.

        Args:
            model: Whisper model, the configured default if None
            summarize: Summary preference for this job, the stored one if None

        Returns:
            True if the job was started

        Raises:
            InvalidModelError: If the model is not one of the known models
        """
        model = model or self.default_model
        if model not in MODELS:
            raise InvalidModelError(f"Unknown transcription model '{model}', expected one of {', '.join(MODELS)}")

        if summarize is not None:
            self._persist({CREATE_SUMMARY_PREFERENCE: summarize})
        preferences = self._refresh_preferences()

        with self.lock:
            video = self._state.video
            if video is None:
                logger.warning("start_transcription called without a selected video")
                self.publisher.publish_notice("Choose a video first", NoticeLevel.WARNING)
                return False
            self._request_generation += 1
            request_generation = self._request_generation
            self._submission_in_flight = True

        logger.info(f"Starting transcription of {video.uri} (model={model}, summarize={preferences.create_summary})")
        self._forget_pending_job()

        self.transformer.extract_audio(
            video,
            on_success=partial(self._on_audio_extracted, request_generation, model, preferences.create_summary),
            on_failure=partial(self._on_audio_transform_failed, request_generation),
        )
        self.publisher.publish_notice("Starting transcription, please come back again later")
        return True

    def check_status(self) -> bool:
        """Poll the pending job and fold a finished result into the state.

        Blocks for one round trip to the service. Without a pending polling
        key this is a no-op.
        The summary is kept only if the job was submitted with summarize on
        and the preference is still on.

        Returns:
            True if a summary became available
        """
        preferences = self._refresh_preferences()
        key = self.pending_polling_key
        if not key:
            logger.info("No pending transcription to check")
            self.publisher.publish_notice("No transcription is pending")
            return False

        # A summary is kept only if it was requested at submission and is still wanted
        keep_summary = preferences.create_summary and bool(self.store.get(PENDING_SUMMARIZE, True))

        with self.lock:
            request_generation = self._request_generation

        try:
            result = self.client.poll(key)
        except TranscriptionServiceError as e:
            logger.warning(f"Checking transcription {key} failed: {e}")
            self.publisher.publish_notice("Could not reach the transcription service, check again later",
                                          NoticeLevel.ERROR)
            return False

        if not result.completed:
            logger.info(f"Transcription {key} not finished yet")
            self.publisher.publish_notice("Transcription not finished, check again later")
            return False

        changes: Dict[str, Any] = {"transcript": result.transcript}
        persisted: Dict[str, Any] = {TRANSCRIPT_TEXT: result.transcript}
        if keep_summary:
            changes["summary"] = result.summary
            persisted[SUMMARY_TEXT] = result.summary

        with self.lock:
            if request_generation != self._request_generation:
                logger.info(f"Dropping result of superseded transcription {key}")
                return False
            self._update(**changes)

        self._persist(persisted)
        self._forget_pending_job()
        logger.info(f"✅ Transcription {key} completed ({len(result.transcript)} chars)")

        summary_available = keep_summary and bool(result.summary)
        if summary_available:
            self.publisher.publish_notice("Summary available", NoticeLevel.SUCCESS)
        else:
            self.publisher.publish_notice("Transcript available", NoticeLevel.SUCCESS)
        return summary_available

    def reset(self) -> None:
        """Forget the video, its results and any pending job.

        The summary preference goes back to its default (True) in memory and
        in the store.
        """
        logger.info("Resetting view state")
        with self.lock:
            self._video_generation += 1
            self._request_generation += 1
            self._submission_in_flight = False
            self._preferences = Preferences()
            self._state = ViewState()
            self.publisher.publish_state(self._state)

        try:
            self.store.clear([VIDEO_LOCATION, TRANSCRIPT_TEXT, SUMMARY_TEXT, PENDING_POLLING_KEY, PENDING_SUMMARIZE])
        except StorageUnavailable as e:
            self._report_storage_failure(e)
        self._persist({CREATE_SUMMARY_PREFERENCE: True})

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """Block until transform jobs and uploads started so far have reported back.

        Returns:
            True if nothing is pending anymore
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        # Transform continuations run on the job threads, so any upload they
        # start is counted before the thread ends
        if not self.transformer.wait(timeout):
            return False

        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        with self._idle:
            return self._idle.wait_for(lambda: self._pending_uploads == 0, timeout=remaining)

    def _on_video_normalized(self, video_generation: int, output_path: Path) -> None:
        with self.lock:
            if video_generation != self._video_generation:
                logger.info("Ignoring local copy of a superseded video selection")
                return
            self._update(video=MediaReference.from_path(output_path))
        logger.info(f"Local video copy ready at {output_path}")

    def _on_video_transform_failed(self, video_generation: int, error: TransformFailure) -> None:
        with self.lock:
            if video_generation != self._video_generation:
                return
        logger.error(f"Could not copy selected video: {error}")
        self.publisher.publish_notice("The video could not be prepared, please choose it again",
                                      NoticeLevel.ERROR)

    def _on_audio_extracted(self, request_generation: int, model: str, summarize: bool, audio_path: Path) -> None:
        with self.lock:
            if request_generation != self._request_generation:
                logger.info("Not submitting audio of a superseded transcription request")
                return
            self._begin_upload()

        future = self.client.submit(audio_path, model, summarize)
        future.add_done_callback(partial(self._on_submitted, request_generation, summarize))

    def _on_audio_transform_failed(self, request_generation: int, error: TransformFailure) -> None:
        with self.lock:
            if request_generation != self._request_generation:
                return
            self._submission_in_flight = False
        logger.error(f"Audio extraction failed: {error}")
        self.publisher.publish_notice("Could not extract the audio track, please try again", NoticeLevel.ERROR)

    def _on_submitted(self, request_generation: int, summarize: bool, future) -> None:
        try:
            try:
                key = future.result()
            except TranscriptionServiceError as e:
                with self.lock:
                    if request_generation != self._request_generation:
                        return
                    self._submission_in_flight = False
                logger.error(f"Submitting transcription failed: {e}")
                self.publisher.publish_notice("Could not start the transcription, please try again",
                                              NoticeLevel.ERROR)
                return

            with self.lock:
                if request_generation != self._request_generation:
                    logger.info(f"Discarding polling key {key} of a superseded request")
                    return
                self._submission_in_flight = False
                # Flag before key, so a stored key always comes with its own flag
                self._persist({PENDING_SUMMARIZE: summarize, PENDING_POLLING_KEY: key})
            logger.info(f"Stored polling key {key}")
        finally:
            self._end_upload()

    def _update(self, **changes: Any) -> ViewState:
        """Replace the state snapshot with changed fields and publish it."""
        with self.lock:
            self._state = replace(self._state, **changes)
            self.publisher.publish_state(self._state)
            return self._state

    def _refresh_preferences(self, publish: bool = True) -> Preferences:
        """Re-read preferences from the store, the single source of truth."""
        preferences = Preferences(create_summary=bool(self.store.get(CREATE_SUMMARY_PREFERENCE, True)))
        with self.lock:
            self._preferences = preferences
            if publish and self._state.create_summary != preferences.create_summary:
                self._update(create_summary=preferences.create_summary)
        return preferences

    def _persist(self, values: Dict[str, Any]) -> None:
        """Write values to the store, reporting instead of raising on failure."""
        for key, value in values.items():
            try:
                self.store.set(key, value)
            except StorageUnavailable as e:
                self._report_storage_failure(e)
                return

    def _forget_pending_job(self) -> None:
        """Drop the polling key together with the summarize flag it was submitted with."""
        try:
            self.store.clear([PENDING_POLLING_KEY, PENDING_SUMMARIZE])
        except StorageUnavailable as e:
            self._report_storage_failure(e)

    def _report_storage_failure(self, error: StorageUnavailable) -> None:
        logger.error(f"Store write failed: {error}")
        self.publisher.publish_notice("Progress could not be saved on this device", NoticeLevel.WARNING)

    def _begin_upload(self) -> None:
        with self.lock:
            self._pending_uploads += 1

    def _end_upload(self) -> None:
        with self._idle:
            self._pending_uploads -= 1
            self._idle.notify_all()


"""Asynchronous ffmpeg transform jobs with completion callbacks.

Two kinds of one-shot jobs exist: normalizing a selected video into a local
copy and extracting its audio track for upload. Each job runs on its own
background thread and reports through ``on_success(output_path)`` or
``on_failure(TransformFailure)``; both continuations run on that thread.

Output goes to a unique part file next to the canonical path and is renamed
into place only on success. Starting a job bumps the generation of its kind,
so a job superseded by a newer one of the same kind discards its output
instead of committing it.
"""

import os
import time
import uuid
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Any, List, Optional, Union

import ffmpeg

from ..errors import TransformFailure
from ..models.media import MediaReference

logger = logging.getLogger(__name__)

NORMALIZE_JOB = "normalize"
EXTRACT_AUDIO_JOB = "extract_audio"

SuccessCallback = Callable[[Path], None]
FailureCallback = Callable[[TransformFailure], None]


class MediaTransformer:
    """Runs ffmpeg transform jobs on background threads."""
    
    def __init__(
        self,
        output_dir: Union[str, Path],
        video_filename: str = "video.mp4",
        audio_filename: str = "audio.m4a",
        audio_bitrate: str = "128k",
    ):
        """Initialize the transformer.
        
        Args:
            output_dir: Directory holding the canonical output files
            video_filename: Name of the normalized local video copy
            audio_filename: Name of the extracted AAC audio file
            audio_bitrate: Bitrate for the extracted audio
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.video_path = self.output_dir / video_filename
        self.audio_path = self.output_dir / audio_filename
        self.audio_bitrate = audio_bitrate
        
        self.lock = threading.Lock()
        self.generations: Dict[str, int] = {NORMALIZE_JOB: 0, EXTRACT_AUDIO_JOB: 0}
        self.job_threads: List[threading.Thread] = []
        
        logger.info(f"MediaTransformer initialized with output_dir: {self.output_dir}")
    
    def normalize_to_local_copy(self, source: MediaReference,
                                on_success: SuccessCallback,
                                on_failure: Optional[FailureCallback] = None) -> threading.Thread:
        """Re-encode the selected video into the canonical local copy.
        
        Args:
            source: Video selected by the user
            on_success: Called with the local copy path once it is in place
            on_failure: Called with the TransformFailure if ffmpeg fails
            
        Returns:
            The thread running the job
        """
        output_args = {"vcodec": "libx264", "acodec": "aac", "movflags": "+faststart"}
        return self._start_job(NORMALIZE_JOB, source, self.video_path, output_args, on_success, on_failure)
    
    def extract_audio(self, source: MediaReference,
                      on_success: SuccessCallback,
                      on_failure: Optional[FailureCallback] = None) -> threading.Thread:
        """Drop the video track and encode the audio as AAC.
        
        Args:
            source: Video to take the audio from
            on_success: Called with the audio file path once it is in place
            on_failure: Called with the TransformFailure if ffmpeg fails
            
        Returns:
            The thread running the job
        """
        output_args = {"vn": None, "acodec": "aac", "audio_bitrate": self.audio_bitrate}
        return self._start_job(EXTRACT_AUDIO_JOB, source, self.audio_path, output_args, on_success, on_failure)
    
    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for running jobs to finish.
        
        Returns:
            True if no job is still running
        """
        deadline = None if timeout is None else time.time() + timeout
        with self.lock:
            threads = list(self.job_threads)
        for thread in threads:
            remaining = None if deadline is None else max(0.0, deadline - time.time())
            thread.join(remaining)
        return not any(thread.is_alive() for thread in threads)
    
    def _start_job(self, kind: str, source: MediaReference, target: Path,
                   output_args: Dict[str, Any],
                   on_success: SuccessCallback,
                   on_failure: Optional[FailureCallback]) -> threading.Thread:
        with self.lock:
            self.generations[kind] += 1
            generation = self.generations[kind]
            self.job_threads = [t for t in self.job_threads if t.is_alive()]
            
            # Outputs of earlier jobs must not be trusted once a new job starts,
            # unless the job re-encodes that very file
            if _same_file(source, target):
                logger.info(f"{kind} job reads its own output {target}, keeping it until replaced")
            elif target.exists():
                target.unlink()
                logger.debug(f"Deleted previous output {target}")
            
            thread = threading.Thread(
                target=self._run_job,
                args=(kind, generation, source, target, output_args, on_success, on_failure),
            )
            thread.name = f"transform_{kind}_{generation}"
            thread.daemon = True
            self.job_threads.append(thread)
        
        logger.info(f"Starting {kind} job #{generation} for {source.uri}")
        thread.start()
        return thread
    
    def _run_job(self, kind: str, generation: int, source: MediaReference, target: Path,
                 output_args: Dict[str, Any],
                 on_success: SuccessCallback,
                 on_failure: Optional[FailureCallback]) -> None:
        part_path = target.with_name(f"{target.stem}.{uuid.uuid4().hex[:8]}.part{target.suffix}")
        start_time = time.time()
        
        try:
            self._transcode(kind, source.location, part_path, output_args)
        except TransformFailure as e:
            self._discard(part_path)
            if not self._is_current(kind, generation):
                logger.info(f"Ignoring failure of superseded {kind} job #{generation}")
                return
            logger.error(f"{kind} job #{generation} failed: {e}")
            if e.stderr:
                logger.debug(f"ffmpeg stderr: {e.stderr}")
            if on_failure:
                on_failure(e)
            return
        
        with self.lock:
            current = self.generations[kind] == generation
            if current:
                os.replace(part_path, target)
        
        if not current:
            self._discard(part_path)
            logger.info(f"Discarded output of superseded {kind} job #{generation}")
            return
        
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Transformation {kind} #{generation} finished in {duration_ms}ms")
        on_success(target)
    
    def _transcode(self, kind: str, source: str, target: Path, output_args: Dict[str, Any]) -> None:
        """Run ffmpeg synchronously.
        
        Raises:
            TransformFailure: If ffmpeg exits with an error or cannot be started
        """
        try:
            (
                ffmpeg
                .input(source)
                .output(str(target), **output_args)
                .overwrite_output()
                .run(capture_stdout=True, capture_stderr=True)
            )
        except ffmpeg.Error as e:
            stderr = e.stderr.decode('utf-8', errors='replace') if e.stderr else ""
            raise TransformFailure(kind, "ffmpeg exited with an error", stderr) from e
        except OSError as e:
            raise TransformFailure(kind, f"could not run ffmpeg: {e}") from e
        
        if not target.exists():
            raise TransformFailure(kind, f"ffmpeg produced no output at {target}")
    
    def _is_current(self, kind: str, generation: int) -> bool:
        with self.lock:
            return self.generations[kind] == generation
    
    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def _same_file(source: MediaReference, target: Path) -> bool:
    if not source.is_local or not target.exists():
        return False
    try:
        return os.path.samefile(source.location, target)
    except OSError:
        return False

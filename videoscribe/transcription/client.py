"""HTTP client for the remote transcription service."""

import json
import asyncio
import logging
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Optional, Union

import aiohttp
from pydantic import ValidationError

from ..errors import NetworkError, ParseError, ServerError
from ..models.transcription import TranscriptionResult
from .schemas import KeyResponse, TranscriptionResponse
from .worker import RequestWorker

logger = logging.getLogger(__name__)


class TranscriptionClient:
    """Talks to the transcription service over plain HTTP.
    
    All requests run on a dedicated background worker; nothing here touches
    the network on the caller's thread.
    """
    
    def __init__(self, host: str, port: int, timeout: Optional[float] = None,
                 worker: Optional[RequestWorker] = None):
        """Initialize the client.
        
        Args:
            host: Transcription service host name or address
            port: Transcription service port
            timeout: Total per-request timeout in seconds, None for aiohttp's default
            worker: Worker to run requests on, a private one is created if None
        """
        self.host = host
        self.port = port
        self.base_url = f"http://{host}:{port}"
        self.timeout = aiohttp.ClientTimeout(total=timeout) if timeout is not None else None
        self.worker = worker or RequestWorker("transcription")
        
        logger.info(f"TranscriptionClient initialized for {self.base_url}")
    
    def submit(self, audio_file: Union[str, Path], model: str, summarize: bool) -> Future:
        """Upload an audio file for transcription.
        
        The model is passed through unchecked; the service rejects unknown ones.
        
        Args:
            audio_file: Extracted audio to upload
            model: Whisper model name (tiny, base, small, medium or large)
            summarize: Whether the service should also summarize the transcript
            
        Returns:
            Future resolving to the polling key, or failing with NetworkError,
            ServerError or ParseError
        """
        audio_file = Path(audio_file)
        logger.info(f"Submitting {audio_file.name} for transcription (model={model}, summarize={summarize})")
        return self.worker.submit("submit", lambda: self._submit(audio_file, model, summarize))
    
    def poll(self, key: str) -> TranscriptionResult:
        """Ask the service whether a job has finished.
        
        Runs on the worker but blocks until the round trip completes.
        Polling does not change the job on the server, so it is safe to repeat.
        
        Args:
            key: Polling key returned by ``submit``
            
        Returns:
            TranscriptionResult snapshot
            
        Raises:
            ValueError: If key is empty
            NetworkError, ServerError, ParseError: If the request fails
        """
        if not key:
            raise ValueError("Polling key must not be empty")
        
        logger.debug(f"Polling transcription {key}")
        return self.worker.submit("poll", lambda: self._poll(key)).result()
    
    def close(self, timeout: float = 30.0) -> bool:
        """Stop the worker after queued requests are done."""
        return self.worker.shutdown(timeout=timeout)
    
    async def _submit(self, audio_file: Path, model: str, summarize: bool) -> str:
        try:
            audio_data = audio_file.read_bytes()
        except OSError as e:
            raise NetworkError(f"Cannot read audio file {audio_file}: {e}") from e
        
        form = aiohttp.FormData()
        form.add_field(
            "audio", audio_data,
            filename=audio_file.name,
            content_type="application/octet-stream",
        )
        params = {"model": model, "summarize": "true" if summarize else "false"}
        
        payload = await self._request("POST", "/transcribe", params=params, data=form)
        try:
            key = KeyResponse.model_validate(payload).key
        except ValidationError as e:
            raise ParseError(f"Unexpected transcribe response: {e}") from e
        
        logger.info(f"Transcription submitted, polling key {key}")
        return key
    
    async def _poll(self, key: str) -> TranscriptionResult:
        payload = await self._request("GET", "/checkTranscription", params={"transcriptionkey": key})
        try:
            response = TranscriptionResponse.from_payload(payload)
        except ValidationError as e:
            raise ParseError(f"Unexpected checkTranscription response: {e}") from e
        
        if not response.completed:
            return TranscriptionResult(completed=False)
        return TranscriptionResult(completed=True, transcript=response.transcript, summary=response.summary)
    
    def _session_kwargs(self) -> dict:
        return {"timeout": self.timeout} if self.timeout is not None else {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and decode its JSON body.
        
        Raises:
            NetworkError: On connection problems and timeouts
            ServerError: On HTTP error statuses
            ParseError: If the body is not JSON
        """
        url = self.base_url + path
        try:
            async with aiohttp.ClientSession(**self._session_kwargs()) as session:
                async with session.request(method, url, **kwargs) as response:
                    body = await response.text()
                    if response.status >= 400:
                        raise ServerError(response.status, body, operation=path)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e
        
        try:
            return json.loads(body)
        except ValueError as e:
            raise ParseError(f"Response of {path} is not JSON: {body[:200]!r}") from e

"""
Speech-to-text transcription using Faster Whisper.

Used by the pipeline harness in full pipeline mode: float samples go in,
the raw recognizer text comes out, ready for LLM cleanup.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import asyncio
import logging
import time

import numpy as np

logger = logging.getLogger(__name__)

WHISPER_SAMPLE_RATE = 16000


@dataclass
class TranscriptionSegment:
    """A single segment of transcribed text with timing information."""
    start: float  # Start time in seconds
    end: float    # End time in seconds
    text: str


@dataclass
class TranscriptionResult:
    """Complete transcription result with metadata."""
    text: str
    segments: List[TranscriptionSegment]
    language: Optional[str] = None
    duration: Optional[float] = None
    processing_time: Optional[float] = None


def resample(samples: np.ndarray, sample_rate: int, target_rate: int = WHISPER_SAMPLE_RATE) -> np.ndarray:
    """
    Linearly resample mono float samples to ``target_rate``.

    Returns the input unchanged (as float32) when the rates already match.
    """
    samples = np.asarray(samples, dtype=np.float32)
    if sample_rate == target_rate or samples.size == 0:
        return samples

    duration = samples.size / float(sample_rate)
    target_size = max(1, int(round(duration * target_rate)))
    source_times = np.arange(samples.size, dtype=np.float64) / sample_rate
    target_times = np.arange(target_size, dtype=np.float64) / target_rate
    return np.interp(target_times, source_times, samples).astype(np.float32)


class WhisperTranscriber:
    """
    Faster Whisper transcriber with lazy model loading.

    ``model`` is either a model size known to faster-whisper (``"base"``,
    ``"large-v3-turbo"``...) or a path to a local CTranslate2 model directory.
    """

    def __init__(
        self,
        model: Union[str, Path] = "base",
        device: str = "auto",
        compute_type: str = "default",
        beam_size: int = 5,
        vad_filter: bool = True,
    ):
        self.model = str(model)
        self.device = device
        self.compute_type = compute_type
        self.beam_size = beam_size
        self.vad_filter = vad_filter

        self._model = None

    def load_model(self) -> None:
        """
        Load the Whisper model if it is not loaded yet.

        Raises:
            RuntimeError: If the model cannot be loaded.
        """
        if self._model is not None:
            return

        # Imported here so the LLM-only paths never pay for ctranslate2
        from faster_whisper import WhisperModel

        logger.info(f"Loading Whisper model: {self.model} on {self.device} with {self.compute_type}")
        try:
            self._model = WhisperModel(self.model, device=self.device, compute_type=self.compute_type)
        except Exception as e:
            raise RuntimeError(f"Failed to load Whisper model '{self.model}': {e}") from e
        logger.info(f"Successfully loaded Whisper model: {self.model}")

    async def transcribe_samples(
        self,
        samples: np.ndarray,
        sample_rate: int,
        language: Optional[str] = None,
        initial_prompt: Optional[str] = None,
    ) -> TranscriptionResult:
        """
        Transcribe mono float samples.

        Args:
            samples: Mono samples in [-1.0, 1.0]
            sample_rate: Sample rate of ``samples``; resampled to 16 kHz if different
            language: Language code, or ``None``/``"auto"`` to auto-detect
            initial_prompt: Recognizer hint (dictionary terms, language list)

        Returns:
            TranscriptionResult with segment texts joined by single spaces.

        Raises:
            ValueError: If ``samples`` is empty.
            RuntimeError: If the model cannot be loaded.
        """
        audio = resample(samples, sample_rate)
        if audio.size == 0:
            raise ValueError("Audio samples cannot be empty")

        self.load_model()

        effective_language = None if language in (None, "", "auto") else language
        transcribe_params: Dict[str, Any] = {
            "language": effective_language,
            "initial_prompt": initial_prompt or None,
            "beam_size": self.beam_size,
            "vad_filter": self.vad_filter,
        }

        def _run():
            segments, info = self._model.transcribe(audio, **transcribe_params)
            # Segments are a lazy generator; decode inside the worker thread
            return list(segments), info

        start_time = time.time()
        loop = asyncio.get_event_loop()
        segments, info = await loop.run_in_executor(None, _run)

        transcription_segments = []
        for segment in segments:
            text = segment.text.strip()
            if text:
                transcription_segments.append(TranscriptionSegment(start=segment.start, end=segment.end, text=text))

        processing_time = time.time() - start_time
        duration = audio.size / float(WHISPER_SAMPLE_RATE)
        logger.info(f"Transcription completed: {processing_time:.2f}s for {duration:.2f}s audio")

        return TranscriptionResult(
            text=" ".join(s.text for s in transcription_segments).strip(),
            segments=transcription_segments,
            language=getattr(info, "language", effective_language),
            duration=duration,
            processing_time=processing_time,
        )

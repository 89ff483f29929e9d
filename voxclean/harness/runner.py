"""
Pipeline test runner.

Runs scenarios through the cleanup pipeline in one of two modes, decided once
per run:

- ``full pipeline``: the scenario's WAV is transcribed by Whisper, then the
  transcription is corrected by the LLM.
- ``LLM-only``: the scenario's spoken text stands in for the recognizer
  output and goes straight to the LLM.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union
import logging
import os

import httpx

from ..audio.transcriber import WhisperTranscriber
from ..audio.wav import read_wav
from ..cleanup.factory import create_provider
from ..cleanup.prompts import build_whisper_args, build_whisper_prompt
from ..cleanup.providers import DEFAULT_TIMEOUT
from ..config import AppConfig
from .assertions import run_assertions
from .config import PipelineTestConfig, build_llm_config
from .results import CategoryResult, ScenarioResult
from .scenarios import Scenario, load_category
from .scoring import normalized_similarity

logger = logging.getLogger(__name__)

MODE_FULL_PIPELINE = "full pipeline"
MODE_LLM_ONLY = "LLM-only"


@dataclass
class PipelineResult:
    raw_transcription: str
    corrected_text: str


def execution_mode(test_config: PipelineTestConfig) -> str:
    """Full pipeline when a Whisper model path is configured and exists, else LLM-only."""
    model_path = test_config.whisper_model_path
    if model_path and os.path.exists(model_path):
        return MODE_FULL_PIPELINE
    return MODE_LLM_ONLY


def build_app_config(
    test_config: PipelineTestConfig,
    dictionary: Optional[Sequence[str]] = None,
    speech_languages: Optional[Sequence[str]] = None,
    custom_prompt: str = "",
) -> AppConfig:
    """An enabled application config carrying only what the provider factory reads."""
    return AppConfig(
        llm=build_llm_config(test_config),
        enable_llm_enhancement=True,
        custom_prompt=custom_prompt,
        dictionary=list(dictionary or []),
        speech_languages=list(speech_languages or []),
    )


async def run_llm_correction(
    raw_text: str,
    test_config: PipelineTestConfig,
    dictionary: Optional[Sequence[str]] = None,
    speech_languages: Optional[Sequence[str]] = None,
    custom_prompt: str = "",
    timeout: float = DEFAULT_TIMEOUT,
    http_client: Optional[httpx.AsyncClient] = None,
) -> PipelineResult:
    """Correct ``raw_text`` as if it were the recognizer's output."""
    app_config = build_app_config(test_config, dictionary, speech_languages, custom_prompt)
    provider = create_provider(app_config, for_test=True, timeout=timeout, http_client=http_client)
    corrected_text = await provider.correct(raw_text)
    return PipelineResult(raw_transcription=raw_text, corrected_text=corrected_text)


async def run_full_pipeline(
    audio_path: Union[str, Path],
    test_config: PipelineTestConfig,
    transcriber: WhisperTranscriber,
    dictionary: Optional[Sequence[str]] = None,
    speech_languages: Optional[Sequence[str]] = None,
    custom_prompt: str = "",
    timeout: float = DEFAULT_TIMEOUT,
    http_client: Optional[httpx.AsyncClient] = None,
) -> PipelineResult:
    """
    Transcribe a WAV file, then correct the transcription.

    Raises:
        FileNotFoundError: If the audio file does not exist.
    """
    audio_path = Path(audio_path)
    if not audio_path.exists():
        raise FileNotFoundError(f"Audio file not found: {audio_path}")

    wav = read_wav(audio_path)
    whisper_args = build_whisper_args(list(speech_languages or []))
    initial_prompt = build_whisper_prompt(list(dictionary or []), whisper_args.prompt_prefix)

    transcription = await transcriber.transcribe_samples(
        wav.samples,
        wav.sample_rate,
        language=whisper_args.language,
        initial_prompt=initial_prompt,
    )
    logger.debug(f"Raw STT for {audio_path.name}: {transcription.text!r}")

    corrected = await run_llm_correction(
        transcription.text,
        test_config,
        dictionary=dictionary,
        speech_languages=speech_languages,
        custom_prompt=custom_prompt,
        timeout=timeout,
        http_client=http_client,
    )
    return PipelineResult(raw_transcription=transcription.text, corrected_text=corrected.corrected_text)


def evaluate_scenario(scenario: Scenario, result: PipelineResult, mode: str) -> ScenarioResult:
    """A scenario passes only if the similarity floor holds and every assertion passes."""
    similarity = normalized_similarity(result.corrected_text, scenario.expected_output)
    failed_assertions = [
        r.message for r in run_assertions(result.corrected_text, scenario.assertions) if not r.passed
    ]
    passed = similarity >= scenario.min_similarity and not failed_assertions

    return ScenarioResult(
        id=scenario.id,
        description=scenario.description,
        passed=passed,
        expected=scenario.expected_output,
        actual=result.corrected_text,
        similarity=similarity,
        min_similarity=scenario.min_similarity,
        failed_assertions=failed_assertions,
        raw_stt=result.raw_transcription if mode == MODE_FULL_PIPELINE else None,
    )


async def run_scenario(
    scenario: Scenario,
    test_config: PipelineTestConfig,
    mode: str,
    audio_dir: Union[str, Path],
    transcriber: Optional[WhisperTranscriber] = None,
    timeout: float = DEFAULT_TIMEOUT,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ScenarioResult:
    """
    Run and score one scenario.

    Any failure to produce output (provider error, timeout, missing audio) is
    recorded as a failed result carrying the error message.
    """
    try:
        if mode == MODE_FULL_PIPELINE:
            if transcriber is None:
                transcriber = WhisperTranscriber(test_config.whisper_model_path)
            result = await run_full_pipeline(
                Path(audio_dir) / scenario.audio_file,
                test_config,
                transcriber,
                dictionary=scenario.dictionary,
                timeout=timeout,
                http_client=http_client,
            )
        else:
            result = await run_llm_correction(
                scenario.spoken_text,
                test_config,
                dictionary=scenario.dictionary,
                timeout=timeout,
                http_client=http_client,
            )
    except Exception as e:
        logger.error(f"Scenario {scenario.id} failed to run: {e}")
        return ScenarioResult(
            id=scenario.id,
            description=scenario.description,
            passed=False,
            expected=scenario.expected_output,
            actual="",
            similarity=0.0,
            min_similarity=scenario.min_similarity,
            failed_assertions=[f"Error: {e}"],
            error=str(e),
        )

    return evaluate_scenario(scenario, result, mode)


async def run_category(
    category: str,
    scenarios_dir: Union[str, Path],
    test_config: PipelineTestConfig,
    audio_dir: Union[str, Path],
    mode: Optional[str] = None,
    transcriber: Optional[WhisperTranscriber] = None,
    timeout: float = DEFAULT_TIMEOUT,
    http_client: Optional[httpx.AsyncClient] = None,
) -> CategoryResult:
    """Run every scenario of a category, one after another."""
    mode = mode or execution_mode(test_config)
    if mode == MODE_FULL_PIPELINE and transcriber is None:
        transcriber = WhisperTranscriber(test_config.whisper_model_path)

    scenarios = load_category(scenarios_dir, category)
    logger.info(f"Running {len(scenarios)} scenarios for {category} ({mode})")

    results: List[ScenarioResult] = []
    for scenario in scenarios:
        results.append(await run_scenario(
            scenario,
            test_config,
            mode,
            audio_dir,
            transcriber=transcriber,
            timeout=timeout,
            http_client=http_client,
        ))

    return CategoryResult(category=category, mode=mode, results=results)

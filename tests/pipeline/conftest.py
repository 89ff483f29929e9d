"""
Fixtures for the live pipeline suite.

Results are collected while the scenarios run and written, together with the
HTML and Markdown reports, once the session ends.
"""

from pathlib import Path
from typing import Dict, List

import pytest

from voxclean.audio.transcriber import WhisperTranscriber
from voxclean.harness.config import PIPELINE_CONFIG_ENV_VAR, load_pipeline_test_config
from voxclean.harness.report import write_reports
from voxclean.harness.results import ResultsStore, ScenarioResult
from voxclean.harness.runner import MODE_FULL_PIPELINE, execution_mode

RESULTS_DIR = Path(__file__).parent / ".results"


@pytest.fixture(scope="session")
def pipeline_config():
    config = load_pipeline_test_config()
    if config is None:
        pytest.skip(f"{PIPELINE_CONFIG_ENV_VAR} not set")
    return config


@pytest.fixture(scope="session")
def pipeline_mode(pipeline_config):
    return execution_mode(pipeline_config)


@pytest.fixture(scope="session")
def transcriber(pipeline_config, pipeline_mode):
    if pipeline_mode != MODE_FULL_PIPELINE:
        return None
    return WhisperTranscriber(pipeline_config.whisper_model_path)


@pytest.fixture(scope="session")
def recorded_results(pipeline_mode):
    collected: Dict[str, List[ScenarioResult]] = {}
    yield collected

    store = ResultsStore(RESULTS_DIR)
    store.write_collected(collected, pipeline_mode)
    write_reports(store)

"""
Pipeline test scenarios.

A scenario is one dictated utterance together with what the cleaned output
should look like. Scenarios are grouped by category, one JSON file per
category, using the camelCase keys of the fixture format.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging
import re

logger = logging.getLogger(__name__)

ASSERTION_TYPES = ("must_contain", "must_not_contain", "must_match_regex", "must_end_with")

SCENARIO_CATEGORIES = [
    "filler-removal",
    "self-corrections",
    "false-starts",
    "speech-recognition-errors",
    "punctuation-detection",
    "content-preservation",
    "prompt-injection-resistance",
    "spoken-punctuation",
    "number-date-formatting",
    "contextual-repair",
    "mixed-complexity",
    "dictionary-terms",
]

MIN_SCENARIOS_PER_CATEGORY = 5
MAX_SCENARIOS_PER_CATEGORY = 8


@dataclass
class Assertion:
    type: str
    value: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assertion":
        return cls(type=str(data.get("type", "")), value=str(data.get("value", "")))


@dataclass
class Scenario:
    """One utterance, its expected cleanup and the checks applied to it."""
    id: str
    description: str
    spoken_text: str
    audio_file: str
    expected_output: str
    min_similarity: float
    assertions: List[Assertion] = field(default_factory=list)
    dictionary: Optional[List[str]] = None

    @property
    def category(self) -> str:
        return self.id.rsplit("-", 1)[0]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scenario":
        dictionary = data.get("dictionary")
        return cls(
            id=str(data.get("id", "")),
            description=str(data.get("description", "")),
            spoken_text=str(data.get("spokenText", "")),
            audio_file=str(data.get("audioFile", "")),
            expected_output=str(data.get("expectedOutput", "")),
            min_similarity=float(data.get("minSimilarity", 0.0)),
            assertions=[Assertion.from_dict(a) for a in data.get("assertions") or []],
            dictionary=[str(term) for term in dictionary] if dictionary is not None else None,
        )


def _read_file(path: Path) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Scenario file {path.name} must contain a JSON array")
    return data


def load_category(scenarios_dir: Union[str, Path], category: str) -> List[Scenario]:
    """
    Load every scenario of one category.

    Raises:
        FileNotFoundError: If the category has no scenario file.
        ValueError: If the file is not a JSON array.
    """
    path = Path(scenarios_dir) / f"{category}.json"
    scenarios = [Scenario.from_dict(item) for item in _read_file(path)]
    logger.debug(f"Loaded {len(scenarios)} scenarios from {path}")
    return scenarios


def list_categories(scenarios_dir: Union[str, Path]) -> List[str]:
    """Categories that have a scenario file, sorted by file name."""
    return sorted(path.stem for path in Path(scenarios_dir).glob("*.json"))


def load_all(scenarios_dir: Union[str, Path]) -> Dict[str, List[Scenario]]:
    """Load every scenario file in the directory, keyed by category."""
    return {category: load_category(scenarios_dir, category) for category in list_categories(scenarios_dir)}


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value


def _validate_scenario(raw: Dict[str, Any], category: str, position: int) -> List[str]:
    errors: List[str] = []
    scenario_id = raw.get("id")
    label = f"{category}.json[{position}] ({scenario_id})"

    if not isinstance(scenario_id, str) or not re.fullmatch(rf"{re.escape(category)}-\d{{3}}", scenario_id):
        errors.append(f"{label}: id must match '{category}-NNN'")

    for key in ("description", "spokenText", "expectedOutput"):
        if _is_blank(raw.get(key)):
            errors.append(f"{label}: {key} must be a non-empty string")

    audio_file = raw.get("audioFile")
    if not isinstance(audio_file, str) or not re.fullmatch(rf"{re.escape(category)}/\d{{3}}\.wav", audio_file):
        errors.append(f"{label}: audioFile must match '{category}/NNN.wav'")

    min_similarity = raw.get("minSimilarity")
    if isinstance(min_similarity, bool) or not isinstance(min_similarity, (int, float)) or not 0 <= min_similarity <= 1:
        errors.append(f"{label}: minSimilarity must be a number in [0, 1]")

    assertions = raw.get("assertions")
    if not isinstance(assertions, list) or not assertions:
        errors.append(f"{label}: at least one assertion is required")
    else:
        for assertion in assertions:
            assertion_type = assertion.get("type") if isinstance(assertion, dict) else None
            if assertion_type not in ASSERTION_TYPES:
                errors.append(f"{label}: unknown assertion type {assertion_type!r}")
            if _is_blank(assertion.get("value") if isinstance(assertion, dict) else None):
                errors.append(f"{label}: assertion value must be a non-empty string")

    if category == "dictionary-terms":
        dictionary = raw.get("dictionary")
        if not isinstance(dictionary, list) or not dictionary:
            errors.append(f"{label}: dictionary-terms scenarios need a non-empty dictionary")

    return errors


def validate_scenarios(scenarios_dir: Union[str, Path]) -> List[str]:
    """
    Check every scenario file against the fixture schema.

    Returns:
        Every violation found, as human-readable messages. Empty when valid.
    """
    scenarios_dir = Path(scenarios_dir)
    errors: List[str] = []
    files = sorted(scenarios_dir.glob("*.json"))
    if not files:
        return [f"No scenario files found in {scenarios_dir}"]

    seen_ids = set()
    for path in files:
        category = path.stem
        if category not in SCENARIO_CATEGORIES:
            errors.append(f"{path.name}: unknown category '{category}'")

        try:
            items = _read_file(path)
        except (ValueError, json.JSONDecodeError) as e:
            errors.append(f"{path.name}: {e}")
            continue

        if not MIN_SCENARIOS_PER_CATEGORY <= len(items) <= MAX_SCENARIOS_PER_CATEGORY:
            errors.append(
                f"{path.name}: expected {MIN_SCENARIOS_PER_CATEGORY}-{MAX_SCENARIOS_PER_CATEGORY} "
                f"scenarios, found {len(items)}"
            )

        for position, raw in enumerate(items):
            if not isinstance(raw, dict):
                errors.append(f"{path.name}[{position}]: scenario must be a JSON object")
                continue

            scenario_id = raw.get("id")
            if scenario_id in seen_ids:
                errors.append(f"Duplicate ID: {scenario_id}")
            seen_ids.add(scenario_id)

            errors.extend(_validate_scenario(raw, category, position))

    return errors

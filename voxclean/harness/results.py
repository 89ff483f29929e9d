"""
Per-category result files for pipeline test runs.

Each category writes one ``{category}.json`` into the results directory; the
report step reads them all back once the run is over.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging
import shutil

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_DIR = Path("tests") / "pipeline" / ".results"


@dataclass
class ScenarioResult:
    id: str
    description: str
    passed: bool
    expected: str
    actual: str
    similarity: float
    min_similarity: float
    failed_assertions: List[str] = field(default_factory=list)
    raw_stt: Optional[str] = None  # only set in full pipeline mode
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioResult":
        return cls(
            id=data["id"],
            description=data.get("description", ""),
            passed=bool(data.get("passed", False)),
            expected=data.get("expected", ""),
            actual=data.get("actual", ""),
            similarity=float(data.get("similarity", 0.0)),
            min_similarity=float(data.get("min_similarity", 0.0)),
            failed_assertions=list(data.get("failed_assertions") or []),
            raw_stt=data.get("raw_stt"),
            error=data.get("error"),
        )


@dataclass
class CategoryResult:
    category: str
    mode: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    results: List[ScenarioResult] = field(default_factory=list)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def all_passed(self) -> bool:
        return self.passed_count == self.total

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryResult":
        return cls(
            category=data["category"],
            mode=data.get("mode", "unknown"),
            timestamp=data.get("timestamp", ""),
            results=[ScenarioResult.from_dict(r) for r in data.get("results") or []],
        )


class ResultsStore:
    """Reads and writes category result files in one directory."""

    def __init__(self, results_dir: Union[str, Path] = DEFAULT_RESULTS_DIR):
        self.results_dir = Path(results_dir)

    def clean(self) -> None:
        """Remove previous results and recreate an empty directory."""
        if self.results_dir.exists():
            shutil.rmtree(self.results_dir)
        self.results_dir.mkdir(parents=True, exist_ok=True)

    def write(self, result: CategoryResult) -> Path:
        self.results_dir.mkdir(parents=True, exist_ok=True)
        path = self.results_dir / f"{result.category}.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
        logger.debug(f"Wrote {result.total} results to {path}")
        return path

    def write_collected(self, collected: Dict[str, List[ScenarioResult]], mode: str) -> List[Path]:
        """
        Write one file per category in ``collected``, in category order.

        Files of categories that did not run are left as they are, so a
        filtered run does not wipe earlier results.
        """
        return [
            self.write(CategoryResult(category=category, mode=mode, results=collected[category]))
            for category in sorted(collected)
        ]

    def read_all(self) -> List[CategoryResult]:
        """Every category result, sorted by file name. Empty if the directory is missing."""
        if not self.results_dir.is_dir():
            return []

        categories = []
        for path in sorted(self.results_dir.glob("*.json")):
            with open(path, "r", encoding="utf-8") as f:
                categories.append(CategoryResult.from_dict(json.load(f)))
        return categories

"""Content assertions applied to cleanup output."""

from dataclasses import dataclass
from typing import List, Sequence
import re

from .scenarios import Assertion


@dataclass
class AssertionResult:
    assertion: Assertion
    passed: bool
    message: str


def _check(output: str, assertion: Assertion) -> AssertionResult:
    value = assertion.value

    if assertion.type == "must_contain":
        passed = value in output
        message = f'Contains "{value}"' if passed else f'Missing "{value}" in output'
    elif assertion.type == "must_not_contain":
        passed = value not in output
        message = f'Does not contain "{value}"' if passed else f'Unexpectedly contains "{value}" in output'
    elif assertion.type == "must_match_regex":
        passed = re.search(value, output) is not None
        message = f"Matches regex /{value}/" if passed else f"Does not match regex /{value}/"
    elif assertion.type == "must_end_with":
        passed = output.endswith(value)
        message = f'Ends with "{value}"' if passed else f'Does not end with "{value}", ends with "{output[-20:]}"'
    else:
        passed = False
        message = f"Unknown assertion type {assertion.type!r}"

    return AssertionResult(assertion=assertion, passed=passed, message=message)


def run_assertions(output: str, assertions: Sequence[Assertion]) -> List[AssertionResult]:
    """Evaluate every assertion against ``output``, in order."""
    return [_check(output, assertion) for assertion in assertions]

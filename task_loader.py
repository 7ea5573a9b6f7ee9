"""Filesystem-backed loader for natural-language test case files."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

import yaml

from exceptions import TaskLoadError, TaskValidationError
from test_types import TestCase, TestStep

TASK_SUFFIXES = {".yaml", ".yml", ".json"}


def _as_list(value: Any) -> List[str]:
    """Convert value to list of strings."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value]
    if isinstance(value, str):
        return [value]
    raise TaskLoadError(f"Expected string or list, got {type(value).__name__}")


def _as_set(value: Any) -> Set[str]:
    """Convert value to set of strings."""
    if value is None:
        return set()
    if isinstance(value, (list, set, tuple)):
        return {str(item) for item in value}
    if isinstance(value, str):
        return {value}
    raise TaskLoadError(f"Expected string, list, or set, got {type(value).__name__}")


def _step_number(value: Any, position: int) -> Optional[int]:
    """Explicit step number, the 1-based position when absent, None when invalid."""
    if value is None:
        return position
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    if number != value and str(number) != str(value).strip():
        return None
    return number if number > 0 else None


def _parse_steps(raw_steps: Any, task_id: str) -> List[TestStep]:
    if not isinstance(raw_steps, list) or not raw_steps:
        raise TaskValidationError("Test case must define at least one step", task_id=task_id, field="steps")

    steps: List[TestStep] = []
    seen: Set[int] = set()
    for position, raw in enumerate(raw_steps, 1):
        if not isinstance(raw, dict):
            raise TaskValidationError(f"Step {position} must be a mapping", task_id=task_id, field="steps")

        number = _step_number(raw.get("step"), position)
        if number is None:
            raise TaskValidationError(
                f"Step {position} has an invalid step number: {raw.get('step')!r}",
                task_id=task_id,
                field="steps",
            )
        if number in seen:
            raise TaskValidationError(f"Duplicate step number: {number}", task_id=task_id, field="steps")
        seen.add(number)

        action = raw.get("action")
        expected = raw.get("expected")
        if not action or not isinstance(action, str):
            raise TaskValidationError(f"Step {number} is missing an 'action'", task_id=task_id, field="steps")
        if not expected or not isinstance(expected, str):
            raise TaskValidationError(f"Step {number} is missing an 'expected' result", task_id=task_id, field="steps")

        steps.append(TestStep(step=number, action=action.strip(), expected=expected.strip()))
    return steps


def _parse_task(data: Dict[str, Any], fallback_id: str) -> TestCase:
    """Parse a dictionary into a TestCase."""
    if not isinstance(data, dict):
        raise TaskLoadError("Test case payload must be a mapping")

    task_id = str(data.get("id") or fallback_id)

    target_url = data.get("target_url")
    if not target_url or not isinstance(target_url, str):
        raise TaskValidationError("Test case is missing a 'target_url'", task_id=task_id, field="target_url")

    steps = _parse_steps(data.get("steps"), task_id)

    return TestCase(
        id=task_id,
        title=str(data.get("title") or task_id),
        target_url=target_url.strip(),
        steps=steps,
        priority=str(data.get("priority") or "medium"),
        tags=_as_set(data.get("tags")),
        preconditions=_as_list(data.get("preconditions")),
        site_context=_as_list(data.get("site_context")),
        skip=bool(data.get("skip", False)),
        skip_reason=data.get("skip_reason"),
    )


def load_task_file(path: Path) -> TestCase:
    """Load a single test case file (YAML or JSON)."""
    try:
        raw = path.read_text(encoding="utf-8")
        if path.suffix.lower() in {".yml", ".yaml"}:
            data = yaml.safe_load(raw)
        else:
            data = json.loads(raw)
        return _parse_task(data, fallback_id=path.stem)
    except (TaskLoadError, TaskValidationError):
        raise
    except Exception as exc:
        raise TaskLoadError(f"Failed to load test case file: {exc}", file_path=str(path)) from exc


def discover_tasks(
    tasks_dir: Path,
    only_ids: Optional[Iterable[str]] = None,
    include_tags: Optional[Set[str]] = None,
    exclude_tags: Optional[Set[str]] = None,
    include_skipped: bool = False,
) -> List[TestCase]:
    """
    Discover and load test cases from a directory.

    Args:
        tasks_dir: Directory containing test case YAML/JSON files
        only_ids: If provided, only load cases with these IDs
        include_tags: If provided, only include cases with at least one of these tags
        exclude_tags: If provided, exclude cases with any of these tags
        include_skipped: If True, include cases marked as skip=true

    Returns:
        List of TestCase objects, ordered by file name
    """
    tasks_dir = tasks_dir.expanduser().resolve()

    if not tasks_dir.exists():
        raise TaskLoadError(f"Tasks directory does not exist: {tasks_dir}")

    id_filter = {tid for tid in (only_ids or [])}
    found: List[TestCase] = []

    paths = sorted(p for p in tasks_dir.iterdir() if p.is_file() and p.suffix.lower() in TASK_SUFFIXES)

    for path in paths:
        task = load_task_file(path)

        if id_filter and task.id not in id_filter:
            continue

        if task.skip and not include_skipped:
            continue

        if not task.matches_filter(include_tags, exclude_tags):
            continue

        found.append(task)

    # Check for missing IDs
    if id_filter:
        found_ids = {t.id for t in found}
        missing = id_filter - found_ids
        if missing:
            raise TaskLoadError(f"Test cases not found: {', '.join(sorted(missing))}")

    return found


def validate_task(data: Dict[str, Any]) -> List[str]:
    """
    Validate test case data without loading.

    Returns list of validation errors (empty if valid).
    """
    errors = []

    if not isinstance(data, dict):
        return ["Test case must be a dictionary/mapping"]

    if not data.get("target_url"):
        errors.append("Missing required field: target_url")
    elif not isinstance(data["target_url"], str):
        errors.append("target_url must be a string")

    steps = data.get("steps")
    if not steps:
        errors.append("Missing required field: steps")
    elif not isinstance(steps, list):
        errors.append("steps must be a list")
    else:
        seen: Set[int] = set()
        for position, step in enumerate(steps, 1):
            if not isinstance(step, dict):
                errors.append(f"Step {position} must be a mapping")
                continue
            number = _step_number(step.get("step"), position)
            if number is None:
                errors.append(f"Step {position}: step number must be a positive integer")
            elif number in seen:
                errors.append(f"Step {position}: duplicate step number {number}")
            else:
                seen.add(number)
            if not step.get("action"):
                errors.append(f"Step {position}: missing action")
            if not step.get("expected"):
                errors.append(f"Step {position}: missing expected result")

    for field in ("tags", "preconditions", "site_context"):
        value = data.get(field)
        if value is not None and not isinstance(value, (str, list)):
            errors.append(f"{field} must be a string or list")

    return errors

"""YAML parser for wdsched task files."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ParseError, ValidationError
from .models import TaskRecord
from .scheduler.config import SchedulingConfig, parse_scheduling_config
from .schemas import TaskFileSchema, TaskSchema

HOURS_PER_DAY = 24


class DeadlineUnit(str, Enum):
    """Integer unit that due dates are converted into."""

    HOURS = "hours"
    DAYS = "days"


def deadline_from_due_date(
    due_date: date, current_date: date, unit: DeadlineUnit = DeadlineUnit.HOURS
) -> int:
    """Convert a calendar due date into integer deadline units from ``current_date``.

    Past due dates give negative deadlines, which no task can meet.
    """
    days = (due_date - current_date).days
    if unit == DeadlineUnit.DAYS:
        return days
    return days * HOURS_PER_DAY


@dataclass
class TaskFile:
    """Parsed task file: records plus the scheduling config found in it."""

    tasks: list[TaskRecord] = field(default_factory=list)
    config: SchedulingConfig = field(default_factory=SchedulingConfig)


class TaskFileParser:
    """Parser for task YAML files."""

    def __init__(
        self,
        current_date: date | None = None,
        unit: DeadlineUnit = DeadlineUnit.HOURS,
    ):
        """Initialize the parser.

        Args:
            current_date: Reference date for due dates (defaults to today)
            unit: Unit that due dates are converted into
        """
        self.current_date = current_date or date.today()  # noqa: DTZ011
        self.unit = unit

    def parse_file(self, file_path: Path | str) -> TaskFile:
        """Parse a YAML file into task records and config."""
        path = Path(file_path)
        if not path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            with path.open(encoding="utf-8") as f:
                data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to parse YAML: {e}") from e

        if data is None:
            return TaskFile()
        if not isinstance(data, dict):
            raise ParseError("YAML must contain a dictionary at the root level")

        return self.parse_data(data)  # type: ignore[arg-type]

    def parse_data(self, data: dict[str, Any]) -> TaskFile:
        """Parse already-loaded YAML data."""
        try:
            schema = TaskFileSchema(**data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid task file structure: {e}") from e

        return TaskFile(
            tasks=[self._to_record(entry) for entry in schema.tasks],
            config=parse_scheduling_config(schema.config),
        )

    def _to_record(self, entry: TaskSchema) -> TaskRecord:
        deadline = entry.deadline
        if entry.due_date is not None:
            deadline = deadline_from_due_date(entry.due_date, self.current_date, self.unit)

        return TaskRecord(
            id=entry.id,
            name=entry.name,
            weight=entry.weight,
            duration=entry.duration,
            deadline=deadline,
            dependencies=frozenset(entry.dependencies),
        )


def load_tasks(
    path: Path | str,
    *,
    current_date: date | None = None,
    unit: DeadlineUnit = DeadlineUnit.HOURS,
) -> TaskFile:
    """Load a task file (main entry point for file-based callers)."""
    return TaskFileParser(current_date=current_date, unit=unit).parse_file(path)

"""Pydantic schemas for task file validation."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class TaskSchema(BaseModel):
    """Schema for a single task entry."""

    id: int
    name: str = ""
    weight: int = Field(gt=0)
    duration: int = Field(ge=0)
    deadline: int | None = None  # Integer time units
    due_date: date | None = None  # Converted to a deadline relative to the current date
    dependencies: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_single_deadline(self) -> TaskSchema:
        """A task may give a deadline or a due date, not both."""
        if self.deadline is not None and self.due_date is not None:
            raise ValueError(f"Task {self.id}: specify either 'deadline' or 'due_date', not both")
        return self

    @field_validator("dependencies", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[Any]:
        """Accept a single id or a comma-separated string as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        if isinstance(v, list):
            return v  # type: ignore[return-value]
        return [v]


class TaskFileSchema(BaseModel):
    """Schema for the entire task file."""

    tasks: list[TaskSchema] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)

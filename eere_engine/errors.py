"""Exceptions and warnings raised by the displacement pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(eq=False)
class InvalidInputError(ValueError):
    """Raised when an EERE input set is malformed or contradictory."""

    message: str
    fields: tuple[str, ...] = field(default_factory=tuple)

    def __str__(self) -> str:  # pragma: no cover - trivial formatting helper
        if not self.fields:
            return self.message
        return f"{self.message} (fields: {', '.join(self.fields)})"


@dataclass(eq=False)
class DegenerateSeriesError(InvalidInputError):
    """Raised when an hourly series cannot support the calculation (e.g. empty)."""


@dataclass(eq=False)
class MissingDatasetError(LookupError):
    """Raised when a region has no baseline dataset or renewable defaults loaded."""

    region_id: str
    kind: str = "baseline dataset"
    path: Path | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial formatting helper
        message = f"No {self.kind} available for region '{self.region_id}'"
        if self.path is not None:
            message += f" (expected at {self.path})"
        return message


@dataclass(eq=False)
class DatasetValidationError(ValueError):
    """Raised when a dataset file exists but fails structural validation."""

    file: Path | None
    reason: str

    def __str__(self) -> str:  # pragma: no cover - trivial formatting helper
        if self.file is None:
            return self.reason
        return f"{self.file}: {self.reason}"


class HardLimitExceeded(UserWarning):
    """Issued when an EERE profile displaces more than the hard limit in any hour."""


__all__ = [
    "DatasetValidationError",
    "DegenerateSeriesError",
    "HardLimitExceeded",
    "InvalidInputError",
    "MissingDatasetError",
]

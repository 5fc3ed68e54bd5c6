"""Exceptions raised for structurally invalid sales datasets."""

from __future__ import annotations

from typing import Optional


class ForecastDataError(ValueError):
    """Base class for dataset problems that abort an import or evaluation."""


class FormatError(ForecastDataError):
    """The CSV document lacks a header row or any data rows."""


class MissingColumnError(FormatError):
    def __init__(self, column: str, message: Optional[str] = None) -> None:
        self.column = column
        super().__init__(message or f"Missing required '{column}' column")


class EmptyResultError(ForecastDataError):
    """No usable data points survived validation."""

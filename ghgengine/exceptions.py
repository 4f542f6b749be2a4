"""GHG Engine Exception Hierarchy.

This module provides the exception hierarchy for the emission factor
ingestion and GHG calculation engine, with rich error context for
debugging, monitoring, and user feedback.

Exception Hierarchy:
    GHGEngineException (base)
    ├── ConfigurationError
    ├── CalculationException
    │   ├── FuelNotFoundError
    │   ├── AmbiguousFuelError
    │   ├── SectorMismatchError
    │   └── UnitConversionError
    ├── ImportException
    │   ├── UnsupportedFormatError
    │   ├── FileReadError
    │   ├── PersistenceError
    │   └── ReadOnlyFactorError
    └── BatchItemSkipped

All exceptions include rich context:
- error_code: Unique error identifier
- context: Dictionary with error-specific details
- timestamp: When the error occurred

Example:
    >>> from ghgengine.exceptions import FuelNotFoundError
    >>> raise FuelNotFoundError(
    ...     message="Fuel not found: Diesel X",
    ...     context={"fuel_name": "Diesel X"}
    ... )
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class GHGEngineException(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "GHG_CALC_FUEL_NOT_FOUND_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
    """

    ERROR_PREFIX = "GHG"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()

    def _generate_error_code(self) -> str:
        """Generate error code from the class name.

        Returns:
            Error code like "GHG_IMPORT_FILE_READ_ERROR"
        """
        # CamelCase -> SCREAMING_SNAKE_CASE
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


class ConfigurationError(GHGEngineException):
    """Invalid engine configuration or unreadable reference data."""


# ==============================================================================
# Calculation Exceptions
# ==============================================================================

class CalculationException(GHGEngineException):
    """Base exception for emission calculation errors.

    Raised for a single calculation call; never retried.
    """
    ERROR_PREFIX = "GHG_CALC"


class FuelNotFoundError(CalculationException):
    """The requested fuel is not in the reference catalog.

    Example:
        >>> raise FuelNotFoundError(
        ...     message="Fuel not found: Kerosene",
        ...     context={"fuel_name": "Kerosene"}
        ... )
    """

    def __init__(
        self,
        message: str,
        fuel_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if fuel_name is not None:
            context = context or {}
            context["fuel_name"] = fuel_name
        super().__init__(message, context=context)


class AmbiguousFuelError(FuelNotFoundError):
    """A partial fuel name matched more than one catalog entry."""

    def __init__(
        self,
        message: str,
        fuel_name: Optional[str] = None,
        candidates: Optional[List[str]] = None,
    ):
        context = {"candidates": list(candidates or [])}
        super().__init__(message, fuel_name=fuel_name, context=context)


class SectorMismatchError(CalculationException):
    """The fuel is not valid for the requested economic sector."""

    def __init__(
        self,
        message: str,
        fuel_name: Optional[str] = None,
        sector: Optional[str] = None,
        valid_sectors: Optional[List[str]] = None,
    ):
        context = {
            "fuel_name": fuel_name,
            "sector": sector,
            "valid_sectors": list(valid_sectors or []),
        }
        super().__init__(message, context=context)


class UnitConversionError(CalculationException):
    """A quantity could not be normalized to a mass basis."""


# ==============================================================================
# Import Exceptions
# ==============================================================================

class ImportException(GHGEngineException):
    """Base exception for factor import errors."""
    ERROR_PREFIX = "GHG_IMPORT"


class UnsupportedFormatError(ImportException):
    """The uploaded file format is not supported (e.g. Excel workbooks)."""


class FileReadError(ImportException):
    """The uploaded file could not be read or decoded.

    Aborts the whole import before any row is processed.
    """


class PersistenceError(ImportException):
    """A call to the persistence collaborator failed."""


class ReadOnlyFactorError(ImportException):
    """Attempt to update or delete a system-owned factor."""

    def __init__(self, message: str, factor_id: Optional[str] = None):
        super().__init__(message, context={"factor_id": factor_id})


# ==============================================================================
# Batch Exceptions
# ==============================================================================

class BatchItemSkipped(GHGEngineException):
    """Raised by a batch processor to report an item as skipped, not failed."""
    ERROR_PREFIX = "GHG_BATCH"


__all__ = [
    "GHGEngineException",
    "ConfigurationError",
    "CalculationException",
    "FuelNotFoundError",
    "AmbiguousFuelError",
    "SectorMismatchError",
    "UnitConversionError",
    "ImportException",
    "UnsupportedFormatError",
    "FileReadError",
    "PersistenceError",
    "ReadOnlyFactorError",
    "BatchItemSkipped",
]

"""
Buildman Exceptions.

All buildman errors are wrapped in BuildError for consistent handling.
"""

from typing import Any


class BuildError(Exception):
    """
    Base exception for all Buildman errors.

    Usage:
        raise BuildError('INVALID_SINK_LENGTH', length=130)

    Attributes:
        code: Error code (INVALID_ORDER, INVALID_STAGE, etc.)
        details: Additional context as keyword arguments
    """

    default_code = "BUILD_ERROR"

    def __init__(self, code: str | None = None, **details: Any):
        self.code = code or self.default_code
        self.details = details
        message = f"{self.code}: {details}" if details else self.code
        super().__init__(message)

    def as_dict(self) -> dict:
        """Return error as dictionary for API responses."""
        return {"code": self.code, **self.details}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"BuildError({self.code}: {details_str})"
        return f"BuildError({self.code})"


class ConfigurationIncompleteError(BuildError):
    """A declared build number has no sink configuration."""

    default_code = "CONFIGURATION_INCOMPLETE"

    def __init__(self, build_number: str, **details: Any):
        super().__init__(None, build_number=build_number, **details)


class BOMCycleError(BuildError):
    """The catalog references an assembly from inside its own expansion."""

    default_code = "BOM_CYCLE"

    def __init__(self, node_id: str, path: list[str] | tuple[str, ...] = ()):
        super().__init__(None, node_id=node_id, path=list(path))


class BOMServiceError(BuildError):
    """The BOM service could not produce a BOM. Aborts the compile."""

    default_code = "BOM_SERVICE_FAILED"


# Common error codes
# INVALID_ORDER: Raw order failed validation
# INVALID_SINK_LENGTH: Sink length outside every body range
# INVALID_TOLERANCE: Testing task with min_value > max_value
# INVALID_TEST_TYPE: Testing task with an unknown test type
# INVALID_STAGE: Workflow stage not in the stage order
# INVALID_PROCUREMENT: Procurement update failed validation
# SNAPSHOT_NOT_FOUND: No compiled snapshot for the order

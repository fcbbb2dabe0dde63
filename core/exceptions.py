"""
Custom exceptions for the migration engine with structured error context.

Every exception carries a context dictionary so failures can be emitted as
machine-parseable output by the run scripts.

Exception Hierarchy:
    MigrationException (base)
    ├── ConfigurationError
    ├── RowError
    │   ├── ValidationError
    │   └── ReferentialGapError
    └── TransactionError
        └── ConcurrentRunError

Only ConfigurationError and TransactionError halt a run. RowError subclasses
are absorbed into per-row outcomes by the entity appliers, unless the
unresolved-parent policy is set to "fail".
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class MigrationException(Exception):
    """
    Base exception for all migration errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (entity, row key, batch, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/output."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(MigrationException):
    """
    Raised when required configuration is missing or unusable.

    Always raised before any write to the target.

    Context should include:
        - setting: Name of the missing setting, or
        - path: Path of a missing input file
    """
    pass


# ============================================================================
# Row Errors
# ============================================================================

class RowError(MigrationException):
    """
    Base exception for problems with a single source row.

    Appliers turn these into Skipped / Dropped outcomes instead of letting
    them propagate.
    """

    @property
    def reason(self) -> str:
        return self.message


class ValidationError(RowError):
    """
    Malformed row: no natural key, non-positive required quantity, etc.

    Context should include:
        - entity: Entity type of the row
        - field_name: Field that failed validation
    """
    pass


class ReferentialGapError(RowError):
    """
    A structurally required parent could not be resolved.

    Context should include:
        - entity: Entity type of the dependent row
        - parent_entity: Entity type of the missing parent
        - parent_key: Source key that did not resolve
    """
    pass


# ============================================================================
# Transaction Errors
# ============================================================================

class TransactionError(MigrationException):
    """
    Store-level failure during a batch. Fatal for the batch: the apply
    transaction is rolled back and the batch is marked failed.

    Context should include:
        - operation: What was being executed (APPLY, RESET, MARK_FAILED)
        - batch_id: Batch identifier (if known)
    """
    pass


class ConcurrentRunError(TransactionError):
    """Another invocation holds the migration run guard."""
    pass

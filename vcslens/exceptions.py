"""
Error types for vcslens

Parser and history errors are returned to the caller as values attached to the
offending unit (hunk, file or commit). Only the git source raises to its caller.
"""

from typing import Literal, Optional, cast
from pydantic import BaseModel, Field


# All possible error sources in the library
ErrorSource = Literal[
  "commit",  # Commit record validation
  "diff",  # Hunk parsing
  "file",  # Whole-file diff parsing
  "source",  # Git collaborator (command execution)
  "unknown",  # Uncategorized errors
]


class ErrorReport(BaseModel):
  """Serializable error description"""

  description: str = Field(..., description="Human-readable error message")
  name: str = Field(..., description="Unique error identifier")
  source: ErrorSource = Field(..., description="Where the error originated")
  unit: Optional[str] = Field(
    None, description="Offending unit: hunk header, file path or commit id"
  )
  caused_by: Optional[str] = Field(
    None, description="Original error details if this is a chained error"
  )


class VcsLensError(Exception):
  """
  Base class for vcslens errors.
  All errors carry enough data to be reported as an ErrorReport.
  """

  default_name = "VCSLENS_ERROR"
  default_source: ErrorSource = "unknown"

  def __init__(
    self,
    description: str,
    name: Optional[str] = None,
    source: Optional[ErrorSource] = None,
    unit: Optional[str] = None,
    caused_by: Optional[str] = None,
  ):
    """
    Initialize an error

    Args:
        description: Human-readable error message
        name: Unique error identifier (e.g., "HUNK_COUNT_MISMATCH")
        source: Where the error originated from
        unit: The hunk header, file path or commit id the error belongs to
        caused_by: Original error details if this wraps another error
    """
    self.description: str = description
    self.name: str = name or self.default_name
    self.source: ErrorSource = source or self.default_source
    self.unit: Optional[str] = unit
    self.caused_by: Optional[str] = caused_by
    super().__init__(description)

  def to_report(self) -> ErrorReport:
    """Convert to ErrorReport model"""
    return ErrorReport(
      description=self.description,
      name=self.name,
      source=cast(ErrorSource, self.source),
      unit=self.unit,
      caused_by=self.caused_by,
    )

  def __eq__(self, other: object) -> bool:
    # Errors are values: the same failure found twice compares equal
    if not isinstance(other, VcsLensError):
      return NotImplemented
    return type(self) is type(other) and self.to_report() == other.to_report()

  def __hash__(self) -> int:
    return hash(
      (type(self), self.description, self.name, self.source, self.unit, self.caused_by)
    )

  @classmethod
  def from_exception(
    cls,
    e: Exception,
    name: Optional[str] = None,
    unit: Optional[str] = None,
    context: Optional[str] = None,
  ) -> "VcsLensError":
    """
    Create an error from an existing exception

    Args:
        e: The original exception
        name: Error identifier for this error
        unit: Offending unit
        context: Additional context to prepend to the description

    Returns:
        Error with original exception details preserved
    """
    original_msg = str(e)
    description = f"{context}: {original_msg}" if context else original_msg

    return cls(
      description=description,
      name=name,
      unit=unit,
      caused_by=f"{e.__class__.__name__}: {original_msg}",
    )


class ConstructionError(VcsLensError):
  """Required commit or branch fields are missing or invalid"""

  default_name = "INVALID_COMMIT"
  default_source: ErrorSource = "commit"


class MalformedDiffError(VcsLensError):
  """Unparsable hunk header or hunk line counts that do not match the header"""

  default_name = "MALFORMED_HUNK"
  default_source: ErrorSource = "diff"


class UnsupportedInputError(VcsLensError):
  """No file header found, or a binary marker where a hunk was expected"""

  default_name = "UNSUPPORTED_DIFF"
  default_source: ErrorSource = "file"


class SourceError(VcsLensError):
  """The git collaborator failed to produce raw text"""

  default_name = "GIT_COMMAND_FAILED"
  default_source: ErrorSource = "source"

"""
Commit and branch models
Records are validated once at construction and are immutable afterwards
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .exceptions import ConstructionError


def _validation_message(e: ValidationError) -> str:
  return "; ".join(
    f"{'.'.join(str(loc) for loc in err['loc']) or 'record'}: {err['msg']}"
    for err in e.errors()
  )


class Commit(BaseModel):
  """A single commit of the history"""

  model_config = ConfigDict(
    frozen=True, alias_generator=to_camel, populate_by_name=True
  )

  id: str
  parent_ids: tuple[str, ...] = ()
  author: str
  author_email: Optional[str] = None
  date: datetime
  message: str = ""
  graph_level: Optional[int] = None

  @field_validator("id", mode="before")
  @classmethod
  def parse_id(cls, v: Any) -> str:
    """Ids are scalars, stored as non-empty strings"""
    if isinstance(v, bool) or not isinstance(v, (str, int)):
      raise ValueError("Id property required")
    v = str(v).strip()
    if not v:
      raise ValueError("Id property required")
    return v

  @field_validator("parent_ids", mode="before")
  @classmethod
  def parse_parent_ids(cls, v: Any) -> tuple[str, ...]:
    """Parents come as a space separated string or a list of ids"""
    match v:
      case None:
        return ()
      case str():
        return tuple(v.split())
      case list() | tuple():
        return tuple(p.strip() for p in v if isinstance(p, str) and p.strip())
      case _:
        raise ValueError(f"Parent ids must be a string or a list, got: {v!r}")

  @field_validator("author", mode="before")
  @classmethod
  def parse_author(cls, v: Any) -> str:
    if not isinstance(v, str) or not v.strip():
      raise ValueError("Contributor name required")
    return v.strip()

  @field_validator("date", mode="before")
  @classmethod
  def parse_date(cls, v: Any) -> datetime:
    """Accept a datetime, an epoch timestamp or an ISO formatted string"""
    match v:
      case datetime():
        return v
      case bool():
        raise ValueError("Date is required")
      case int() | float():
        return datetime.fromtimestamp(v, tz=timezone.utc)
      case str() if v.strip():
        try:
          return datetime.fromisoformat(v.strip())
        except ValueError as e:
          raise ValueError(f"Date must be ISO formatted, got: {v}") from e
      case _:
        raise ValueError("Date is required")

  @property
  def primary_parent(self) -> Optional[str]:
    return self.parent_ids[0] if self.parent_ids else None

  @property
  def is_merge(self) -> bool:
    return len(self.parent_ids) > 1

  @property
  def subject(self) -> str:
    """First line of the message"""
    return self.message.strip().split("\n")[0]

  @classmethod
  def from_record(cls, record: dict[str, Any]) -> "Commit":
    """
    Build a commit from a raw record

    Args:
      record: Mapping with id, parentIds, author, date, message
        (snake_case keys are accepted too)

    Returns:
      The validated commit

    Raises:
      ConstructionError: a required field is missing or invalid
    """
    unit = record.get("id") if isinstance(record, dict) else None
    try:
      return cls.model_validate(record)
    except ValidationError as e:
      raise ConstructionError(
        f"Invalid commit record: {_validation_message(e)}",
        unit=str(unit) if unit is not None else None,
        caused_by=f"ValidationError: {e.error_count()} error(s)",
      ) from e

  def with_graph_level(self, level: int) -> "Commit":
    return self.model_copy(update={"graph_level": level})

  def to_dict(self) -> dict[str, Any]:
    """Convert to dict for JSON serialization"""
    return self.model_dump(mode="json", by_alias=True)


class Branch(BaseModel):
  """A branch and the commit it points to"""

  model_config = ConfigDict(
    frozen=True, alias_generator=to_camel, populate_by_name=True
  )

  id: str = Field(..., min_length=1, description="Branch name")
  head: str = Field(..., min_length=1, description="Head commit id")
  is_current: bool = False

  @classmethod
  def from_record(cls, record: dict[str, Any]) -> "Branch":
    unit = record.get("id") if isinstance(record, dict) else None
    try:
      return cls.model_validate(record)
    except ValidationError as e:
      raise ConstructionError(
        f"Invalid branch record: {_validation_message(e)}",
        name="INVALID_BRANCH",
        unit=str(unit) if unit is not None else None,
      ) from e


class History(BaseModel):
  """Commits built from a batch of records, plus the records that were skipped"""

  model_config = ConfigDict(arbitrary_types_allowed=True)

  commits: list[Commit] = Field(default_factory=list)
  errors: list[ConstructionError] = Field(default_factory=list)


def build_history(records: Iterable[dict[str, Any]]) -> History:
  """
  Build commits from raw records, newest first

  Invalid records are skipped and their errors collected; construction of the
  remaining history continues.
  """
  history = History()
  for record in records:
    try:
      history.commits.append(Commit.from_record(record))
    except ConstructionError as e:
      history.errors.append(e)
  return history

"""Data models for the Telescope search pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePath
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


@dataclass(frozen=True)
class TranslationRequest:
    """Payload sent to the translation endpoint."""
    query: str
    model_type: str = "gemini"
    model: str = "gemini-2.0-flash"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "modelType": self.model_type,
            "modelConfig": {"model": self.model},
        }


def parse_flag(raw: str) -> bool:
    """
    Interpret a loosely-formatted boolean string.

    Leading whitespace, a sign and leading zeros are skipped; the value is
    true when the next character is Y, T (any case) or a digit 1-9.
    """
    s = raw.lstrip()
    if s[:1] in ("+", "-"):
        s = s[1:]
    s = s.lstrip("0")
    return bool(s) and (s[0] in "YyTt" or s[0] in "123456789")


class TranslationResponse(BaseModel):
    """
    Structured translation result, decoded once at the HTTP boundary.

    Accepts both the current key names and the legacy Spotlight-specific
    ones (mdfind_command, startDate_filter, endDate_filter, useCreation).
    Unrecognized keys are kept in ``extras``.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    search_command: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("search_command", "mdfind_command"),
    )
    start_date_filter: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("start_date_filter", "startDate_filter"),
    )
    end_date_filter: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("end_date_filter", "endDate_filter"),
    )
    use_creation_date: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("use_creation_date", "useCreation"),
    )

    @model_validator(mode="before")
    @classmethod
    def check_string_mapping(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("translation response must be a JSON object")
        for key, value in data.items():
            if value is not None and not isinstance(value, str):
                raise ValueError(f"value for {key!r} must be a string or null")
        return data

    @property
    def extras(self) -> Dict[str, Optional[str]]:
        return dict(self.model_extra or {})

    @property
    def has_date_filter(self) -> bool:
        return self.start_date_filter is not None or self.end_date_filter is not None

    @property
    def uses_creation_date(self) -> bool:
        if self.use_creation_date is None:
            return True
        return parse_flag(self.use_creation_date)


@dataclass(frozen=True)
class ParsedCommand:
    """Backend query split into an optional scope hint and the predicate."""
    search_path_hint: Optional[str]
    predicate: str


@dataclass(frozen=True)
class SearchHit:
    """Raw match as returned by the index backend."""
    path: str
    created: Optional[datetime] = None
    modified: Optional[datetime] = None


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "Unknown"
    return value.strftime("%m/%d/%y, %I:%M %p")


@dataclass(frozen=True)
class FileResult:
    """One surfaced match, ready for presentation."""
    id: int
    name: str
    path: str
    type: str
    created_display: str
    modified_display: str

    @classmethod
    def from_hit(cls, index: int, hit: SearchHit, file_type: str) -> "FileResult":
        return cls(
            id=index,
            name=PurePath(hit.path).name,
            path=hit.path,
            type=file_type,
            created_display=format_timestamp(hit.created),
            modified_display=format_timestamp(hit.modified),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "type": self.type,
            "created": self.created_display,
            "modified": self.modified_display,
        }


@dataclass
class SearchOutcome:
    """Terminal output of one search."""
    files: List[FileResult] = field(default_factory=list)
    total_results: int = 0
    has_more: bool = False

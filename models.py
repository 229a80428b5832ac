"""
Pydantic models for the lazy combinator library.

Settings, declarative stage descriptions used to assemble a Chain from plain
data, and traversal measurement reports.
"""

import logging
from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StageKind(str, Enum):
    """Combinator stages a Chain can be assembled from."""
    MAP = "map"
    FILTER = "filter"
    TAKE = "take"
    SKIP = "skip"
    CHUNK = "chunk"
    CONCAT = "concat"
    REVERSE = "reverse"


# stages driven by a caller function vs. by an integer argument
CALLABLE_STAGES = {StageKind.MAP, StageKind.FILTER}
COUNTED_STAGES = {StageKind.TAKE, StageKind.SKIP, StageKind.CHUNK}


class ChainSettings(BaseModel):
    """Runtime settings for logging and pull tracing."""
    log_level: str = Field(
        default="INFO",
        description="Name of the logging level used by configure_logging()"
    )
    trace_pulls: bool = Field(
        default=False,
        description="Log every pull made from an instrumented source"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Accept only the standard logging level names."""
        level = str(v).strip().upper()
        valid_levels = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"]
        if level not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {valid_levels}")
        return level

    def level_number(self) -> int:
        return logging.getLevelName(self.log_level)


class StageSpec(BaseModel):
    """Declarative description of one combinator stage."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    kind: StageKind = Field(..., description="Which combinator to apply")
    fn: Optional[Callable[..., Any]] = Field(
        None,
        description="Transform (map) or predicate (filter)"
    )
    count: Optional[int] = Field(
        None,
        description="Element count (take, skip) or chunk size (chunk)",
        ge=0
    )
    sources: List[Any] = Field(
        default_factory=list,
        description="Sources appended after the chain (concat)"
    )

    @model_validator(mode='after')
    def validate_arguments(self):
        """Each kind carries exactly the argument it needs."""
        if self.kind in CALLABLE_STAGES and self.fn is None:
            raise ValueError(f"'{self.kind.value}' stage requires fn")
        if self.kind in COUNTED_STAGES and self.count is None:
            raise ValueError(f"'{self.kind.value}' stage requires count")
        if self.kind is StageKind.CHUNK and self.count == 0:
            raise ValueError("'chunk' stage requires count >= 1")
        return self


class TraversalReport(BaseModel):
    """Measurement of a single traversal."""
    result: Any = Field(..., description="Value produced by the converter")
    result_size: Optional[int] = Field(
        None,
        description="len(result) when the result has a length",
        ge=0
    )
    execution_time_ms: float = Field(..., description="Wall-clock time in milliseconds", ge=0)
    peak_memory_mb: float = Field(..., description="Peak traced memory in megabytes", ge=0)

"""
Pydantic models for the coverage request body and the stored row.
"""

import time

from pydantic import BaseModel, Field

U64_MAX = 2**64 - 1


def epoch_ms() -> int:
    """Current wall-clock time in milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


class CoverageReport(BaseModel):
    """Coverage report submitted by a CI job."""
    secret_phrase: str = Field(..., strict=True)
    statement_percent: float = Field(..., strict=True, allow_inf_nan=False, description="Statement coverage, e.g. 87.5")


class CoverageRecord(BaseModel):
    """Row written to the coverage table."""
    timestamp_ms: int = Field(..., ge=0, le=U64_MAX)
    statement_percent: float

    @classmethod
    def stamp(cls, report: CoverageReport) -> "CoverageRecord":
        """Build a record for *report* timestamped with the current time."""
        return cls(timestamp_ms=epoch_ms(), statement_percent=report.statement_percent)

    def as_params(self) -> tuple[int, float]:
        """Positional parameters in table column order."""
        return (self.timestamp_ms, self.statement_percent)

"""In-memory record of pipeline cycle runs."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

CycleName = Literal["reconciliation", "overlay"]
RunStatus = Literal["running", "success", "failure", "skipped"]


class CycleRun(BaseModel):
    """One execution of a pipeline cycle.

    Tracks records processed and the error message when the cycle failed or
    was skipped, so /stats can show why the directory went stale.
    """

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    cycle: CycleName
    status: RunStatus = "running"
    records_processed: int = 0
    error_message: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: Optional[datetime] = None

    def finish(self, status: RunStatus, records: int = 0, error: Optional[str] = None) -> None:
        self.status = status
        self.records_processed = records
        self.error_message = error
        self.ended_at = datetime.now(timezone.utc)

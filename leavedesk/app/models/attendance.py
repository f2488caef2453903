"""Attendance validation schema."""

import datetime

from pydantic import BaseModel, ConfigDict, Field


class AttendanceSchema(BaseModel):
    """Fields a client may write on an attendance record."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    hours_worked: int = Field(..., ge=0, le=24, description="Whole hours worked on the day")
    date: datetime.date = Field(..., description="Day the hours were worked")
    user_id: str | None = None

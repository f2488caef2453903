"""Leave request validation schema."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class LeaveSchema(BaseModel):
    """Fields a client may write on a leave record."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    status: str = Field(..., min_length=1, description="Approval status, e.g. pending or approved")
    leave_type: str | None = Field(None, description="Kind of leave, e.g. annual or sick")
    start_date: date | None = None
    end_date: date | None = None
    reason: str | None = None
    user_id: str | None = Field(None, description="User the leave belongs to")

    @field_validator("end_date")
    @classmethod
    def end_not_before_start(cls, v: date | None, info: ValidationInfo) -> date | None:
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date must not be before start_date")
        return v

"""Models package - re-exports for convenience."""

from leavedesk.app.models.attendance import AttendanceSchema
from leavedesk.app.models.leave import LeaveSchema
from leavedesk.app.models.user import Role, UserSchema
from leavedesk.app.models.validation import validate_payload

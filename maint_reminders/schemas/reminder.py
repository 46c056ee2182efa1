from pydantic import BaseModel, Field


class ReminderPayload(BaseModel):
    """Content of one maintenance reminder notification."""
    plate: str
    destination: str
    display_name: str
    next_reminder: str = Field(..., description="Formatted reminder date")
    body: str


class ScanResponse(BaseModel):
    """Aggregate outcome of a due-reminder scan."""
    sent: int = 0
    errors: int = 0

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    code: str
    retryable: bool = False
    suggestion: str | None = None  # Human-readable next step

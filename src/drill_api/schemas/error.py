from pydantic import BaseModel


class ErrorMessage(BaseModel):
    """Body of every error response: a short label and a human-readable message."""
    error: str
    message: str

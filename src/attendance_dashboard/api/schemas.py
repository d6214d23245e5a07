"""Request and response models for the dashboard API."""

from pydantic import BaseModel


class CreateSessionRequest(BaseModel):
    """Subject and classroom entered before generating a QR code."""

    subject: str = ""
    classroom: str = ""


class ErrorResponse(BaseModel):
    kind: str
    message: str

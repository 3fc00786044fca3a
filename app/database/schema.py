from datetime import datetime

from pydantic import BaseModel, Field


class ShortenRequest(BaseModel):
    """Request model for creating a shortened URL.

    Args:
        url (str): The URL to be shortened.
    """

    url: str = Field(
        ...,
        min_length=1,
        description="URL to be shortened",
        examples=["https://example.com/Some/Path"],
    )


class ShortenResponse(BaseModel):
    """Response model for a shortened URL.

    Args:
        short_code (str): The Base62 short code.
        short_url (str): The public URL that redirects to the original.
    """

    short_code: str = Field(..., examples=["2bNq8xKa0"])
    short_url: str = Field(..., examples=["https://miniurl.com/2bNq8xKa0"])


class ErrorResponse(BaseModel):
    error: str
    message: str
    timestamp: datetime

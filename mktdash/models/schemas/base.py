"""
Base schemas used across the application.
"""
from datetime import datetime
from typing import Optional, Any, Dict
from pydantic import BaseModel, Field, ConfigDict

from mktdash.utils.time import utc_now


class ResponseBase(BaseModel):
    """Envelope returned by action endpoints, with an optional free-form data payload."""
    success: bool = True
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)
    data: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class PageMeta(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int

    model_config = ConfigDict(from_attributes=True)

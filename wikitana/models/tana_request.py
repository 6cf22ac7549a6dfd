from datetime import date as Date
from typing import Optional

from pydantic import BaseModel, Field


class TanaRequest(BaseModel):
    title: Optional[str] = Field(
        default=None,
        description="Title, slug or URL of the seed article. Defaults to the featured article.",
    )
    max_depth: int = Field(
        default=1,
        ge=0,
        le=5,
        description="Maximum number of link levels to follow from the seed (0–5).",
    )
    max_size: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Maximum number of pages to collect (1–1000).",
    )
    language: str = Field(default="en", min_length=2, max_length=12, pattern=r"^[a-z][a-z0-9-]*$")
    date: Optional[Date] = Field(
        default=None,
        description="Date of the featured article when no title is given (default: today).",
    )

"""Request classification: the cheap, local hint passed to the agent."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class RequestCategory(str, Enum):
    ACTION = "action"
    QUERY = "query"
    INSIGHT = "insight"
    ADVISORY = "advisory"


class ExtractedEntities(BaseModel):
    """Fields that could not be extracted are None, never zero."""

    users: Optional[List[str]] = None
    projects: Optional[List[str]] = None
    timeframe: Optional[str] = None         # "this week" | "next week"
    hours: Optional[float] = None


class ClassifiedRequest(BaseModel):
    category: RequestCategory
    confidence: float = Field(ge=0.0, le=1.0)
    original_text: str
    extracted_entities: ExtractedEntities = ExtractedEntities()

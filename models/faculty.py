"""Data model for a faculty member (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel


class Faculty(BaseModel):
    """A teacher. The engine only reads the id; the rest is display data."""

    id: str
    name: str
    department: str = ""
    email: Optional[str] = None
    subject_ids: list[str] = []

"""Data model for a classroom (Pydantic v2)."""

from pydantic import BaseModel


class Classroom(BaseModel):
    """A bookable room."""

    id: str
    name: str
    capacity: int = 0
    room_type: str = "lecture"   # "lecture", "lab", ...

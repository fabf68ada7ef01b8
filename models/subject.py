"""Data model for a subject (Pydantic v2)."""

from pydantic import BaseModel, Field

from config.defaults import PERIOD_NAMES


class Subject(BaseModel):
    """A subject with its weekly and daily quotas."""

    id: str
    name: str
    code: str = ""
    department: str = ""
    required_per_week: int = Field(0, ge=0)  # classes per week
    max_per_day: int = Field(0, ge=0)        # 0 = no daily cap

    @property
    def daily_cap(self) -> int:
        """Effective per-day cap (max_per_day, or one per period when unset)."""
        return self.max_per_day if self.max_per_day > 0 else len(PERIOD_NAMES)

"""Category class for cost classification."""

from datetime import datetime
from typing import Optional


class Category:
    """A user-defined cost category (fuel, insurance, ...)."""

    def __init__(
        self,
        id: str,
        name: str,
        active: bool = True,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.name = name
        self.active = active
        self.created_at = created_at or datetime.now()

    def matches(self, name: str) -> bool:
        """Case-insensitive name comparison."""
        return self.name.strip().lower() == name.strip().lower()

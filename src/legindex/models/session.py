"""Legislative session model — the unit that partitions rebuild scans."""

from __future__ import annotations

from datetime import date
from functools import total_ordering
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


@total_ordering
class SessionYear(BaseModel):
    """A two-year legislative session, identified by its odd start year.

    Sessions start on odd years (2021 covers 2021–2022). Constructing a
    session from an even year normalizes it to the session that contains it.

    Example:
        >>> SessionYear(year=2022)
        SessionYear(year=2021)
        >>> SessionYear(year=2021).next().year
        2023
    """

    model_config = ConfigDict(frozen=True)

    year: int = Field(ge=1, description="Start year of the session (always odd)")

    @model_validator(mode="before")
    @classmethod
    def _normalize_year(cls, data: Any) -> Any:
        if isinstance(data, int):
            data = {"year": data}
        if isinstance(data, dict) and isinstance(data.get("year"), int | str):
            try:
                year = int(data["year"])
            except ValueError:
                return data
            data = {**data, "year": year - 1 if year % 2 == 0 else year}
        return data

    @classmethod
    def of(cls, year: int) -> SessionYear:
        """Session containing the given calendar year."""
        return cls(year=year)

    @classmethod
    def current(cls, today: date | None = None) -> SessionYear:
        """Session containing ``today`` (defaults to the current date)."""
        return cls(year=(today or date.today()).year)

    @property
    def end_year(self) -> int:
        return self.year + 1

    def next(self) -> SessionYear:
        """The session that follows this one."""
        return SessionYear(year=self.year + 2)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SessionYear):
            return NotImplemented
        return self.year < other.year

    def __str__(self) -> str:
        return str(self.year)

    def __repr__(self) -> str:
        return f"SessionYear(year={self.year})"

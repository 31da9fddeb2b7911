"""Filter criteria for listing work logs."""

import datetime as dt
from enum import StrEnum
from typing import Any, assert_never

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sitelog.core.config import constants
from sitelog.domain.work_log import WorkLogStatus


class LogView(StrEnum):
    """Dashboard views, each defaulting to its own rolling window."""

    DASHBOARD = "dashboard"
    ALL = "all"

    @property
    def window_days(self) -> int:
        """Days back from today the view covers."""
        match self:
            case LogView.DASHBOARD:
                return constants.DASHBOARD_WINDOW_DAYS
            case LogView.ALL:
                return constants.ALL_LOGS_WINDOW_DAYS
            case _:
                assert_never(self)


class LogFilter(BaseModel):
    """Optional, AND-composed predicates for ``list_logs``.

    Empty strings are treated as absent. Both date bounds are inclusive.
    """

    model_config = ConfigDict(frozen=True)

    start_date: dt.date | None = Field(default=None, description="Earliest log date, inclusive")
    end_date: dt.date | None = Field(default=None, description="Latest log date, inclusive")
    project_id: str | None = Field(default=None, description="Only logs for this project")
    status: WorkLogStatus | None = Field(default=None, description="Only logs in this status")
    team_leader_id: str | None = Field(default=None, description="Only logs owned by this Team Leader")
    search_term: str | None = Field(default=None, description="Case-insensitive match on the work description")

    @field_validator("*", mode="before")
    @classmethod
    def empty_string_to_none(cls, v: Any) -> Any:
        """Treat empty form inputs as absent."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_date_range(self) -> "LogFilter":
        """Validate the date range is not inverted."""
        if self.start_date and self.end_date and self.start_date > self.end_date:
            msg = "start_date must not be after end_date"
            raise ValueError(msg)
        return self

    @classmethod
    def for_recent_days(cls, days: int, *, today: dt.date | None = None, **criteria: Any) -> "LogFilter":
        """Rolling window ending today, as the dashboards default to."""
        end = today or dt.date.today()
        return cls(start_date=end - dt.timedelta(days=days), end_date=end, **criteria)

    @classmethod
    def for_view(cls, view: LogView, *, today: dt.date | None = None, **criteria: Any) -> "LogFilter":
        """Default window of a dashboard view."""
        return cls.for_recent_days(view.window_days, today=today, **criteria)

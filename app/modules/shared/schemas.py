from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class DashboardModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*", when_used="json")
    def serialize_datetime_as_utc(value, _info):
        # Naive datetimes are UTC by convention (see `app/core/utils/time.py:utcnow`) and get a trailing "Z".
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.isoformat() + "Z"
            return value.isoformat().replace("+00:00", "Z")
        return value


class StatsModel(BaseModel):
    """Wire DTO for the token stats calls. Field names are sent as-is (snake_case)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

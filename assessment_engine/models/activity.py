"""Activity log entry model.

Entries are produced by the client during an active session, appended in
timestamp order and never modified afterwards.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from assessment_engine.models.base import FrozenModel
from assessment_engine.utils.constants import ActivityType
from assessment_engine.utils.datetime_utils import ensure_utc
from assessment_engine.utils.exceptions import UnknownActivityType


class ActivityLogEntry(FrozenModel):
    """One timestamped client interaction event.

    ``activity_type`` is kept as the raw string so that an unknown type is
    reported as ``UnknownActivityType`` by the consumer instead of failing
    generic field validation.
    """

    activity_type: str
    timestamp: datetime
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("data", mode="before")
    @classmethod
    def default_data(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def kind(self) -> ActivityType:
        """Resolve the activity type against the closed enumeration.

        Raises:
            UnknownActivityType: If the type is not a known activity
        """
        try:
            return ActivityType(self.activity_type)
        except ValueError as e:
            raise UnknownActivityType(self.activity_type, cause=e) from e

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Read a payload field."""
        return self.data.get(key, default)

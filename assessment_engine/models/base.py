"""Base model classes for engine records.

Every record that crosses the engine boundary is a Pydantic model, so input
is parsed and validated once instead of being trusted as raw JSON.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class EngineModel(BaseModel):
    """Base model for mutable engine records."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_dict(self, **kwargs: Any) -> Dict[str, Any]:
        """Convert model to a JSON-compatible dictionary.

        Args:
            **kwargs: Additional arguments for model_dump

        Returns:
            Dict[str, Any]: Dictionary representation of the model
        """
        return self.model_dump(mode="json", by_alias=True, **kwargs)


class FrozenModel(EngineModel):
    """Base model for immutable reference data and derived results."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        frozen=True,
    )

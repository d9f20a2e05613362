"""Reusable, strict base models shared by every hash-trend value type."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing_extensions import Self


class CamelModel(BaseModel):
    """
    A base model that converts field names to camel case when serializing.

    For example, the field name `result_value` in a Python model will be
    represented as `resultValue` when it is serialized to JSON.

    The camelCase form is what external renderers consume over the HTTP API.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
        arbitrary_types_allowed=True,
    )

    def copy(self: Self, **kwargs: Any) -> Self:
        """Create a copy of the model with the updated fields that are validated."""
        return self.__class__(**(self.model_dump(exclude_unset=True) | kwargs))

    def to_json_dict(self) -> dict[str, Any]:
        """Dump the model as a JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class StrictBaseModel(CamelModel):
    """A strict, immutable pydantic base model."""

    model_config = CamelModel.model_config | {
        "extra": "forbid",
        "frozen": True,
        "strict": True,
    }

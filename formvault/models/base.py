"""JsonModel base class for API communication."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JsonModel(BaseModel):
    """Base model for API communication with camelCase/snake_case conversion.

    - JSON output uses camelCase (for the admin front end)
    - Internal Python uses snake_case
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def model_dump_json(self, **kwargs) -> str:
        """Override to ensure camelCase in JSON output."""
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(**kwargs)

    def to_dict(self, by_alias: bool = False, exclude_none: bool = True) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return self.model_dump(mode="json", by_alias=by_alias, exclude_none=exclude_none)

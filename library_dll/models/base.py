"""Base model for documents exchanged with JavaScript tooling."""

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel


class CamelCaseModel(BaseModel):
    """Pydantic model that reads and writes camelCase keys.

    Fields are declared in snake_case; both spellings are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

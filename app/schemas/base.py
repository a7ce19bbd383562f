from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for API models: camelCase on the wire, snake_case in Python; accepts either on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Base for request/response bodies; the wire format is camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

def blank_to_none(value):
    # Form posts send "" for untouched optional inputs
    if isinstance(value, str) and not value.strip():
        return None
    return value

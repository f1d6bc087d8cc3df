# app/db/schemas/base_schema.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """
    Wire models: camelCase on the wire, snake_case in Python.
    Accepts either spelling on input and reads ORM objects directly.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


__all__ = ["ApiModel"]

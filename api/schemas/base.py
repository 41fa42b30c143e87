"""
Common base for every wire model.

The backend speaks camelCase JSON (fileName, printerId, ...). Python code
uses snake_case attributes. The alias generator bridges the two:
- model_validate({"fileName": ...}) works
- WireModel(file_name=...) also works (populate_by_name)
- model_dump(by_alias=True) produces what the backend expects
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

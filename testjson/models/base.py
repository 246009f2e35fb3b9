"""Base model configuration for all parsed records."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base model with standard configuration.

    Records are frozen and accept both the wire (aliased) and Python field names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

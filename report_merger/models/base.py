"""Base model shared by every canonical report structure."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable value object; equality compares every field in order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

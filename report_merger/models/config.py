"""Configuration of the report merger."""

from typing import Literal

from pydantic import BaseModel, Field

type DonePolicy = Literal["all", "any"]


class MergeConfig(BaseModel):
    """Configuration for parsing and merging reports."""

    max_concurrency: int = Field(
        default=8, ge=1, description="Maximum number of inputs parsed at once"
    )
    # "all" marks a combined module done only when every contributor finished
    done_policy: DonePolicy = "all"

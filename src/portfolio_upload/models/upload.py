"""Upload API response models."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UploadResult(BaseModel):
    """Response body for every upload endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    error: str = ""
    uploaded_files: list[str] = Field(default_factory=list)

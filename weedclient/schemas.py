"""Pydantic models for master/volume responses and submit results."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AssignResult(BaseModel):
    """Response of POST /dir/assign."""
    model_config = ConfigDict(populate_by_name=True)

    fid: str = ""
    url: str = ""
    public_url: str = Field(default="", alias="publicUrl")
    count: int = 0
    error: str = ""
    auth: str = ""


class VolumeLocation(BaseModel):
    """One volume server holding a volume."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str
    public_url: str = Field(default="", alias="publicUrl")


class LookupResult(BaseModel):
    """Response of GET /dir/lookup."""
    model_config = ConfigDict(populate_by_name=True)

    volume_id: str = Field(default="", alias="volumeId")
    locations: List[VolumeLocation] = []
    error: str = ""


class UploadResult(BaseModel):
    """Response of a volume server write."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    size: int = 0
    error: str = ""
    etag: Optional[str] = Field(default=None, alias="eTag")


class SubmitResult(BaseModel):
    """
    Client-facing outcome of one upload.

    Batch uploads return one of these per input; a failed item carries the
    error text instead of raising so sibling items are unaffected.
    """
    file_name: str = ""
    file_base: str = ""
    file_url: str = ""
    fid: str = ""
    size: int = 0
    error: str = ""
    mime_type: str = ""
    ext: str = ""

    @property
    def succeeded(self) -> bool:
        return not self.error

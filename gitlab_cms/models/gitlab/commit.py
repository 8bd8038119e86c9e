from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# response of the commits endpoint
class Commit(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(examples=["ed899a2f4b50b4370feeea94676502b42383c746"])
    short_id: Optional[str] = Field(examples=["ed899a2f4b5"], default=None)
    title: Optional[str] = Field(examples=["Update index.md"], default=None)
    message: Optional[str] = Field(examples=["Update index.md"], default=None)
    created_at: Optional[str] = Field(
        examples=["2024-01-01T12:34:56.000Z"], default=None
    )

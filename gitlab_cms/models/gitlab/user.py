from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int = Field(examples=[137])
    username: str = Field(examples=["jdoe"])
    name: str = Field(examples=["Your Name"])
    state: Optional[str] = Field(examples=["active"], default=None)
    avatar_url: Optional[str] = None
    web_url: Optional[str] = Field(examples=["https://gitlab.com/jdoe"], default=None)

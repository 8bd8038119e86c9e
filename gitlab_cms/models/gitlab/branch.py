from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BranchCommit(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(examples=["7b5c3cc8be40ee161ae89a06bba6229da1032a0c"])


class Branch(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(examples=["master"])
    commit: Optional[BranchCommit] = None
    protected: Optional[bool] = Field(examples=[False], default=None)

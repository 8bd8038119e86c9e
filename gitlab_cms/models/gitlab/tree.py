from __future__ import annotations

from pydantic import BaseModel, Field


class TreeEntry(BaseModel):
    id: str = Field(examples=["482807e41cd1b6b..."])
    name: str = Field(examples=["first-post.md"])
    type: str = Field(examples=["blob"])
    path: str = Field(examples=["content/posts/first-post.md"])
    mode: str = Field(examples=["100644"])

from __future__ import annotations

import base64
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# a file to read; sha is the blob hash and doubles as the cache key
class FileRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = Field(examples=["content/posts/first-post.md"])
    sha: Optional[str] = Field(examples=["12aba94a8e7fff02340..."], default=None)
    label: Optional[str] = Field(examples=["First Post"], default=None)


class FetchedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    file: FileRef
    data: Any = Field(examples=["---\ntitle: First Post\n---\n"])


# raw text file (entry content or metadata), encoded by the client on persist
class TextFile(BaseModel):
    path: str = Field(examples=["content/posts/first-post.md"])
    raw: str = Field(examples=["---\ntitle: First Post\n---\n"])


# binary or text payload that knows how to base64 encode itself
class AssetProxy(BaseModel):
    path: str = Field(examples=["static/img/logo.png"])
    data: bytes

    @classmethod
    def fromBase64(cls, path: str, content: str) -> "AssetProxy":
        return cls(path=path, data=base64.b64decode(content, validate=True))

    def toBase64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

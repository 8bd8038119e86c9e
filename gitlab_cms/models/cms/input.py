from pydantic import BaseModel, Field


class entryContent(BaseModel):
    path: str = Field(examples=["content/posts/first-post.md"])
    raw: str = Field(examples=["---\ntitle: First Post\n---\n"])


class mediaContent(BaseModel):
    path: str = Field(examples=["static/img/logo.png"])
    # base64 encoded file content
    content: str = Field(examples=["iVBORw0KGgoAAAANSUhEUgAA..."])


class persistContent(BaseModel):
    entry: entryContent
    mediaFiles: list[mediaContent] = Field(default=[])
    commitMessage: str = Field(examples=["Create Post first-post"])
    singleCommit: bool = Field(default=False)


class branchContent(BaseModel):
    name: str = Field(examples=["cms/first-post"])
    sha: str = Field(examples=["7b5c3cc8be40ee161ae89a06bba6229da1032a0c"])


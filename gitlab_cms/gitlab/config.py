import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

EDITORIAL_WORKFLOW = "editorial_workflow"
SIMPLE = "simple"


# backend settings; a new client is needed for another repo or branch
class BackendConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    repo: Optional[str] = Field(examples=["jdoe/my-site"], default=None)
    branch: str = Field(examples=["master"], default="master")
    api_root: str = Field(
        examples=["https://gitlab.com/api/v3"], default="https://gitlab.com/api/v3"
    )
    publish_mode: str = Field(examples=[SIMPLE], default=SIMPLE)
    proxied: bool = False

    # read the settings out of the environment (.env is loaded first)
    @classmethod
    def fromEnv(cls) -> "BackendConfig":
        load_dotenv()
        return cls(
            repo=os.environ.get("GITLAB_REPO") or None,
            branch=os.environ.get("GITLAB_BRANCH", "master"),
            api_root=os.environ.get("GITLAB_API_ROOT", "https://gitlab.com/api/v3"),
            publish_mode=os.environ.get("PUBLISH_MODE", SIMPLE),
            proxied=os.environ.get("GITLAB_PROXIED", "false").lower() == "true",
        )


# directory of the persistent blob cache
def cacheDir() -> str:
    return os.environ.get("BACKEND_SAVE", "") + "cache/blobs"

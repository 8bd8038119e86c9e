import json

import httpx
import pytest

from gitlab_cms.gitlab.api import API
from gitlab_cms.gitlab.cache import ContentCache

API_ROOT = "https://gitlab.example.com/api/v3"


def jsonResponse(status: int, payload) -> httpx.Response:
    return httpx.Response(
        status,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json"},
    )


def textResponse(status: int, text: str) -> httpx.Response:
    return httpx.Response(
        status, content=text.encode(), headers={"Content-Type": "text/plain"}
    )


def mockClient(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def cache(tmp_path) -> ContentCache:
    return ContentCache(str(tmp_path / "blobs"))


@pytest.fixture
def make_api():
    def build(handler, token="secret", cache=None, branch="master", repo="jdoe/site"):
        return API(
            mockClient(handler),
            token=token,
            branch=branch,
            repo=repo,
            api_root=API_ROOT,
            cache=cache,
        )

    return build

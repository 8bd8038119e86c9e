import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from gitlab_cms.gitlab.cache import ContentCache
from gitlab_cms.gitlab.errors import SOURCE, APIError, errorFor
from gitlab_cms.gitlab.response import (
    JsonBody,
    TextBody,
    errorMessage,
    parseResponse,
)

DEFAULT_API_ROOT = "https://gitlab.com/api/v3"

# characters encodeURIComponent leaves untouched besides letters, digits and "-_."
URI_SAFE = "!'()*~"


# the transport only retries failed connections, everything else is up to the caller
def defaultClient(timeout: float = 30.0) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.AsyncHTTPTransport(retries=3), timeout=timeout
    )


# thin client for the gitlab repository api of a single repo and branch
class API:
    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        branch: str = "master",
        repo: str = "",
        api_root: str = DEFAULT_API_ROOT,
        cache: ContentCache | None = None,
    ):
        self.client = client
        self.api_root = api_root.rstrip("/")
        self.token = token
        self.branch = branch
        self.repo = repo
        self.repoURL = f"/projects/{quote(repo, safe='')}/repository"
        self.cache = cache

    def requestHeaders(self, headers: dict | None = None) -> dict:
        baseHeader = {"Content-Type": "application/json"}
        baseHeader.update(headers or {})

        if self.token:
            baseHeader["Authorization"] = f"Bearer {self.token}"

        return baseHeader

    # append the query parameters url encoded (same escaping as encodeURIComponent)
    def urlFor(self, path: str, params: dict | None = None) -> str:
        query = [
            f"{key}={quote(str(value), safe=URI_SAFE)}"
            for key, value in (params or {}).items()
        ]
        if query:
            path += "?" + "&".join(query)
        return self.api_root + path

    # perform the request; json error bodies are raised, text bodies are always returned
    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        url = self.urlFor(path, params)
        if body is not None and not isinstance(body, (str, bytes)):
            body = json.dumps(body)

        responseStatus = None
        try:
            response = await self.client.request(
                method, url, headers=self.requestHeaders(headers), content=body
            )
            responseStatus = response.status_code
            result = parseResponse(response)
        except (httpx.HTTPError, ValueError) as e:
            logging.error(f"{method} {url} failed: {e}")
            raise APIError(str(e), responseStatus, SOURCE) from e

        match result.body:
            case JsonBody(value=payload) if not result.ok:
                logging.warning(f"{method} {url} rejected with {result.status}: {payload}")
                raise errorFor(errorMessage(payload), result.status, payload)
            case JsonBody(value=payload):
                return payload
            case TextBody(value=text):
                return text

    def user(self):
        return self.request("/user")

    # read a blob, going through the content cache whenever the hash is known
    async def readFile(self, path: str, sha: str | None = None, branch: str | None = None):
        branch = branch or self.branch
        cacheKey = f"gh.{sha}"

        if sha and self.cache is not None:
            cached = await self.cache.get(cacheKey)
            if cached is not None:
                logging.debug(f"Cache hit for {path} ({sha})")
                return cached

        result = await self.request(
            f"{self.repoURL}/blobs/{branch}", params={"filepath": path}
        )

        if sha and self.cache is not None:
            await self.cache.put(cacheKey, result)

        return result

    def listFiles(self, path: str):
        return self.request(
            f"{self.repoURL}/tree", params={"path": path, "ref_name": self.branch}
        )

    def getFile(self, path: str):
        return self.request(
            f"{self.repoURL}/files", params={"file_path": path, "ref": self.branch}
        )

    async def getTree(self, sha: str | None = None):
        if not sha:
            return {"tree": []}
        return await self.request(f"{self.repoURL}/tree", params={"ref_name": sha})

    def getBranch(self, branch: str | None = None):
        branch = branch or self.branch
        return self.request(f"{self.repoURL}/branches/{quote(branch, safe='')}")

    def createBranch(self, branchName: str, sha: str):
        return self.request(
            f"{self.repoURL}/branches",
            method="POST",
            body={"branch": branchName, "ref": sha},
        )

    def patchBranch(self, branchName: str, sha: str):
        return self.createBranch(branchName, sha)

    def deleteBranch(self, branchName: str):
        return self.request(
            f"{self.repoURL}/branches/{quote(branchName, safe='')}", method="DELETE"
        )

    # one commit on the configured branch, carrying all the given actions
    def commit(self, commitMessage: str, actions: list[dict]):
        return self.request(
            f"{self.repoURL}/commits",
            method="POST",
            body={
                "branch_name": self.branch,
                "commit_message": commitMessage,
                "actions": actions,
            },
        )

import logging

import httpx

from gitlab_cms.gitlab.api import API, defaultClient
from gitlab_cms.gitlab.cache import ContentCache
from gitlab_cms.gitlab.commit import CommitBuilder
from gitlab_cms.gitlab.config import EDITORIAL_WORKFLOW, BackendConfig, cacheDir
from gitlab_cms.gitlab.errors import ConfigurationError, EditorialWorkflowError
from gitlab_cms.gitlab.fetcher import MAX_CONCURRENT_DOWNLOADS, BatchFetcher
from gitlab_cms.gitlab.response import expectPayload
from gitlab_cms.models.cms.entry import AssetProxy, FetchedFile, FileRef, TextFile
from gitlab_cms.models.gitlab.tree import TreeEntry
from gitlab_cms.models.gitlab.user import User


# the gitlab backend before any credentials are known.
# the configuration is checked here, before anything touches the network
class GitLab:
    def __init__(
        self,
        config: BackendConfig,
        proxied: bool = False,
        cache: ContentCache | None = None,
        maxConcurrent: int = MAX_CONCURRENT_DOWNLOADS,
    ):
        if not (proxied or config.proxied) and config.repo is None:
            raise ConfigurationError(
                'The GitLab backend needs a "repo" in the backend configuration.'
            )

        if config.publish_mode == EDITORIAL_WORKFLOW:
            raise EditorialWorkflowError(
                "The GitLab backend does not support the Editorial Workflow.", False
            )

        self.config = config
        self.repo = config.repo or ""
        self.branch = config.branch
        self.cache = cache if cache is not None else ContentCache(cacheDir())
        self.maxConcurrent = maxConcurrent

    # exchange the token for an authenticated backend, self stays untouched
    def withToken(
        self, token: str, client: httpx.AsyncClient | None = None
    ) -> "AuthenticatedGitLab":
        api = API(
            client or defaultClient(),
            token=token,
            branch=self.branch,
            repo=self.repo,
            api_root=self.config.api_root,
            cache=self.cache,
        )
        return AuthenticatedGitLab(self, api)

    # resolve the user behind the token, returns the authenticated backend and the user
    async def authenticate(
        self, state: dict, client: httpx.AsyncClient | None = None
    ) -> tuple["AuthenticatedGitLab", User]:
        backend = self.withToken(state["token"], client)
        userJson = expectPayload(await backend.api.user(), dict)
        user = User.model_validate(userJson)
        logging.info(f"Authenticated {user.username} for repo {self.repo}")
        return backend, user


class AuthenticatedGitLab:
    def __init__(self, base: GitLab, api: API):
        self.base = base
        self.api = api
        self.fetcher = BatchFetcher(api, base.maxConcurrent)
        self.committer = CommitBuilder(api)

    async def getToken(self) -> str | None:
        return self.api.token

    async def user(self) -> User:
        return User.model_validate(expectPayload(await self.api.user(), dict))

    def fetchFiles(self, files: list[FileRef]):
        return self.fetcher.fetchFiles(files)

    # only blobs are read; their ids are git blob hashes and serve as cache keys
    async def entriesByFolder(self, folder: str) -> list[FetchedFile]:
        listing = expectPayload(await self.api.listFiles(folder), list)
        entries = [TreeEntry.model_validate(entry) for entry in listing]
        files = [
            FileRef(path=entry.path, sha=entry.id)
            for entry in entries
            if entry.type == "blob"
        ]
        return await self.fetchFiles(files)

    async def entriesByFiles(self, files: list[dict]) -> list[FetchedFile]:
        refs = [FileRef(path=file["path"], label=file.get("label")) for file in files]
        return await self.fetchFiles(refs)

    async def getEntry(self, path: str) -> FetchedFile:
        data = await self.api.readFile(path)
        return FetchedFile(file=FileRef(path=path), data=data)

    def persistEntry(
        self,
        entry: TextFile | AssetProxy,
        mediaFiles: list[TextFile | AssetProxy] | None = None,
        options: dict | None = None,
    ):
        return self.committer.persistFiles(entry, mediaFiles or [], options or {})

    async def close(self):
        await self.api.client.aclose()

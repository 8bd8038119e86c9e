import asyncio
import logging
from typing import Iterable

from gitlab_cms.gitlab.api import API
from gitlab_cms.models.cms.entry import FetchedFile, FileRef

MAX_CONCURRENT_DOWNLOADS = 10


# reads many files at once while never holding more than maxConcurrent permits
class BatchFetcher:
    def __init__(self, api: API, maxConcurrent: int = MAX_CONCURRENT_DOWNLOADS):
        if maxConcurrent < 1:
            raise ValueError("maxConcurrent has to be at least 1")
        self.api = api
        self.maxConcurrent = maxConcurrent
        self.semaphore = asyncio.Semaphore(maxConcurrent)

    async def fetchFile(self, file: FileRef) -> FetchedFile:
        # the permit is given back on every exit path, errors included
        async with self.semaphore:
            data = await self.api.readFile(file.path, file.sha)
        return FetchedFile(file=file, data=data)

    # all or nothing: the first failing read fails the whole batch.
    # reads still running at that point are left to finish on their own
    async def fetchFiles(self, files: Iterable[FileRef]) -> list[FetchedFile]:
        files = list(files)
        if not files:
            return []

        logging.debug(f"Fetching {len(files)} files, {self.maxConcurrent} at a time")
        results = await asyncio.gather(*[self.fetchFile(file) for file in files])
        return list(results)

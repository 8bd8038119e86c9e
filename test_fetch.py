import asyncio

import httpx
import pytest

from conftest import jsonResponse, textResponse
from gitlab_cms.gitlab.errors import APIError
from gitlab_cms.gitlab.fetcher import MAX_CONCURRENT_DOWNLOADS, BatchFetcher
from gitlab_cms.models.cms.entry import FetchedFile, FileRef


# stands in for the api and records how many reads run at the same time
class CountingApi:
    def __init__(self, failing=(), delay=0.01):
        self.failing = set(failing)
        self.delay = delay
        self.active = 0
        self.maxActive = 0
        self.calls = []

    async def readFile(self, path, sha=None, branch=None):
        self.calls.append(path)
        self.active += 1
        self.maxActive = max(self.maxActive, self.active)
        try:
            await asyncio.sleep(self.delay)
            if path in self.failing:
                raise APIError(f"Couldn't read {path}", 500)
            return f"content of {path}"
        finally:
            self.active -= 1


def test_cached_file_needs_no_network(make_api, cache):
    calls = []

    def handler(request: httpx.Request):
        calls.append(request)
        return textResponse(200, "live")

    fetcher = BatchFetcher(make_api(handler, cache=cache))
    asyncio.run(cache.put("gh.h1", "X"))

    result = asyncio.run(fetcher.fetchFiles([FileRef(path="a.md", sha="h1")]))

    assert result == [FetchedFile(file=FileRef(path="a.md", sha="h1"), data="X")]
    assert calls == []


def test_bounded_concurrency():
    api = CountingApi()
    fetcher = BatchFetcher(api)
    files = [FileRef(path=f"post-{i}.md") for i in range(25)]

    result = asyncio.run(fetcher.fetchFiles(files))

    assert len(result) == 25
    assert {fetched.file.path for fetched in result} == {f.path for f in files}
    assert api.maxActive == MAX_CONCURRENT_DOWNLOADS


def test_small_limit():
    api = CountingApi()
    fetcher = BatchFetcher(api, maxConcurrent=3)

    asyncio.run(fetcher.fetchFiles([FileRef(path=f"{i}.md") for i in range(7)]))

    assert api.maxActive == 3


def test_limit_above_batch_size():
    api = CountingApi()
    fetcher = BatchFetcher(api, maxConcurrent=50)

    asyncio.run(fetcher.fetchFiles([FileRef(path=f"{i}.md") for i in range(5)]))

    assert api.maxActive == 5


def test_one_failure_fails_the_batch():
    api = CountingApi(failing={"3.md"})
    fetcher = BatchFetcher(api, maxConcurrent=2)

    with pytest.raises(APIError) as error:
        asyncio.run(fetcher.fetchFiles([FileRef(path=f"{i}.md") for i in range(6)]))

    assert error.value.message == "Couldn't read 3.md"


def test_permits_released_after_failure():
    api = CountingApi(failing={"0.md"})
    fetcher = BatchFetcher(api, maxConcurrent=2)

    async def run():
        with pytest.raises(APIError):
            await fetcher.fetchFiles([FileRef(path=f"{i}.md") for i in range(4)])
        # let the abandoned reads finish
        while len(api.calls) < 4 or api.active:
            await asyncio.sleep(0.01)
        assert not fetcher.semaphore.locked()

        api.failing.clear()
        return await fetcher.fetchFiles([FileRef(path="again.md")])

    result = asyncio.run(run())

    assert result[0].data == "content of again.md"


def test_empty_batch():
    api = CountingApi()

    assert asyncio.run(BatchFetcher(api).fetchFiles([])) == []
    assert api.calls == []


def test_invalid_limit():
    with pytest.raises(ValueError):
        BatchFetcher(CountingApi(), maxConcurrent=0)


def test_remote_rejection_is_raised(make_api):
    fetcher = BatchFetcher(
        make_api(lambda request: jsonResponse(401, {"message": "401 Unauthorized"}))
    )

    with pytest.raises(APIError) as error:
        asyncio.run(fetcher.fetchFiles([FileRef(path="a.md"), FileRef(path="b.md")]))

    assert error.value.status == 401

import logging
import time
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from gitlab_cms.api.dependencies import commonBackend, raiseApiError, writeLogJson
from gitlab_cms.gitlab.errors import APIError
from gitlab_cms.models.cms.entry import AssetProxy, FetchedFile, FileRef, TextFile
from gitlab_cms.models.cms.input import persistContent
from gitlab_cms.models.gitlab.commit import Commit
from gitlab_cms.models.gitlab.user import User

router = APIRouter()


@router.get(
    "/user",
    summary="The user behind the session",
    description="Resolves the GitLab identity of the logged in user.",
    response_description="Id, username, name and avatar of the user.",
    status_code=status.HTTP_200_OK,
)
async def getUser(backend: commonBackend) -> User:
    startTime = time.time()
    try:
        user = await backend.user()
    except APIError as e:
        raiseApiError("user", startTime, e, "Couldn't resolve the user!")

    writeLogJson("user", 200, startTime)
    return user


# read every file inside the folder (files with a known hash come from the cache)
@router.get(
    "/entries_by_folder",
    summary="All entries of a folder",
    description="Lists the given folder on the configured branch and returns the content of every file in it. At most 10 files are downloaded at the same time.",
    response_description="Array of files with their path, blob hash and content.",
    status_code=status.HTTP_200_OK,
)
async def entries_by_folder(
    backend: commonBackend, folder: Annotated[str, Query()]
) -> list[FetchedFile]:
    startTime = time.time()
    try:
        entries = await backend.entriesByFolder(folder)
    except APIError as e:
        raiseApiError(
            "entries_by_folder", startTime, e, f"Couldn't read folder {folder}!"
        )

    logging.info(f"Sent {len(entries)} entries of folder {folder}")
    writeLogJson("entries_by_folder", 200, startTime)
    return entries


@router.post(
    "/entries_by_files",
    summary="Content of the given files",
    description="Returns the content of every given file. If one file can't be read, the whole request fails.",
    response_description="Array of files with their path, label and content.",
    status_code=status.HTTP_200_OK,
)
async def entries_by_files(
    backend: commonBackend, files: list[FileRef]
) -> list[FetchedFile]:
    startTime = time.time()
    try:
        entries = await backend.fetchFiles(files)
    except APIError as e:
        raiseApiError("entries_by_files", startTime, e, "Couldn't read the files!")

    logging.info(f"Sent {len(entries)} entries")
    writeLogJson("entries_by_files", 200, startTime)
    return entries


@router.get(
    "/entry",
    summary="A single entry",
    description="Reads the file on the given path live from the configured branch.",
    response_description="The file with its path and content.",
    status_code=status.HTTP_200_OK,
)
async def entry(backend: commonBackend, path: Annotated[str, Query()]) -> FetchedFile:
    startTime = time.time()
    try:
        fetched = await backend.getEntry(path)
    except APIError as e:
        raiseApiError("entry", startTime, e, f"{path.split('/')[-1]} not found!")

    writeLogJson("entry", 200, startTime)
    return fetched


# commit the entry together with its media files
@router.put(
    "/persist",
    summary="Save an entry and its media files",
    description="Creates or updates the entry and every media file on the configured branch. Media files are sent base64 encoded. Each file gets its own commit unless singleCommit is set.",
    response_description="Responses of the commit requests from GitLab.",
    status_code=status.HTTP_200_OK,
)
async def persist(backend: commonBackend, content: persistContent) -> list[Commit]:
    startTime = time.time()
    entryFile = TextFile(path=content.entry.path, raw=content.entry.raw)
    try:
        mediaFiles = [
            AssetProxy.fromBase64(media.path, media.content)
            for media in content.mediaFiles
        ]
    except ValueError as e:
        logging.warning(f"Media file is not valid base64: {e}")
        writeLogJson("persist", 400, startTime, e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Media files have to be base64 encoded!",
        )

    try:
        receipts = await backend.persistEntry(
            entryFile,
            mediaFiles,
            {
                "commitMessage": content.commitMessage,
                "singleCommit": content.singleCommit,
            },
        )
    except APIError as e:
        raiseApiError("persist", startTime, e, f"Couldn't save {content.entry.path}!")

    logging.info(f"Saved {content.entry.path} with {len(mediaFiles)} media files")
    writeLogJson("persist", 200, startTime)
    return [Commit.model_validate(receipt) for receipt in receipts]

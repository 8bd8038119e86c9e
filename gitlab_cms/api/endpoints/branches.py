import logging
import time

from fastapi import APIRouter, status

from gitlab_cms.api.dependencies import commonBackend, raiseApiError, writeLogJson
from gitlab_cms.gitlab.errors import APIError
from gitlab_cms.gitlab.response import expectPayload
from gitlab_cms.models.cms.input import branchContent
from gitlab_cms.models.gitlab.branch import Branch

router = APIRouter()


@router.get(
    "/{name:path}",
    summary="Details of a branch",
    description="Returns the branch with the given name together with its latest commit.",
    response_description="Name, latest commit and protection state of the branch.",
    status_code=status.HTTP_200_OK,
)
async def getBranch(backend: commonBackend, name: str) -> Branch:
    startTime = time.time()
    try:
        branch = expectPayload(await backend.api.getBranch(name), dict)
    except APIError as e:
        raiseApiError("getBranch", startTime, e, f"Branch {name} not found!")

    writeLogJson("getBranch", 200, startTime)
    return Branch.model_validate(branch)


@router.post(
    "",
    summary="Create a new branch",
    description="Creates a branch with the given name starting at the given commit sha.",
    response_description="The newly created branch.",
    status_code=status.HTTP_201_CREATED,
)
async def createBranch(backend: commonBackend, content: branchContent) -> Branch:
    startTime = time.time()
    try:
        branch = expectPayload(
            await backend.api.createBranch(content.name, content.sha), dict
        )
    except APIError as e:
        raiseApiError(
            "createBranch", startTime, e, f"Couldn't create branch {content.name}!"
        )

    logging.info(f"Created branch {content.name} at {content.sha}")
    writeLogJson("createBranch", 201, startTime)
    return Branch.model_validate(branch)


@router.delete(
    "/{name:path}",
    summary="Delete a branch",
    description="Deletes the branch with the given name.",
    response_description="Confirmation of the deletion.",
    status_code=status.HTTP_200_OK,
)
async def deleteBranch(backend: commonBackend, name: str) -> str:
    startTime = time.time()
    try:
        await backend.api.deleteBranch(name)
    except APIError as e:
        raiseApiError("deleteBranch", startTime, e, f"Couldn't delete branch {name}!")

    logging.info(f"Deleted branch {name}")
    writeLogJson("deleteBranch", 200, startTime)
    return f"Deleted branch {name}"

import json
import logging
import os
import time
from typing import Annotated, AsyncIterator

import jwt
from cryptography.fernet import Fernet, InvalidToken
from fastapi import Cookie, Depends, HTTPException, status
from starlette.status import HTTP_401_UNAUTHORIZED

from gitlab_cms.gitlab.backend import AuthenticatedGitLab, GitLab
from gitlab_cms.gitlab.config import BackendConfig
from gitlab_cms.gitlab.errors import APIError, ConfigurationError


# decrypt the cookie data with the corresponding public key
def getData(data: Annotated[str, Cookie()]) -> dict:
    # the public key in the .env only holds the key body
    public_key = (
        b"-----BEGIN PUBLIC KEY-----\n"
        + os.environ.get("PUBLIC_RSA", "").encode()
        + b"\n-----END PUBLIC KEY-----"
    )

    try:
        decodedToken = jwt.decode(data, public_key, algorithms=["RS256"])
        fernetKey = os.environ.get("FERNET", "").encode()
        decodedToken["gitlab"] = (
            Fernet(fernetKey).decrypt(decodedToken["gitlab"].encode()).decode()
        )
    except (jwt.PyJWTError, InvalidToken, KeyError, ValueError) as e:
        logging.warning(
            f"Client connected with no valid cookies/Client is not logged in. Error: {e}"
        )
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="You are not logged in",
        )

    return decodedToken


commonToken = Annotated[dict, Depends(getData)]


# one authenticated backend per request, its http client is closed afterwards
async def getBackend(token: commonToken) -> AsyncIterator[AuthenticatedGitLab]:
    try:
        base = GitLab(BackendConfig.fromEnv())
    except ConfigurationError as e:
        logging.error(f"Backend is not configured properly: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        )

    backend = base.withToken(token["gitlab"])
    try:
        yield backend
    finally:
        await backend.close()


commonBackend = Annotated[AuthenticatedGitLab, Depends(getBackend)]


# writes the log entry into the json log file
def writeLogJson(endpoint: str, status: int, startTime: float, error=None):
    try:
        with open("log.json", "r") as log:
            jsonLog = json.load(log)
    except (OSError, ValueError):
        jsonLog = []

    jsonLog.append(
        {
            "endpoint": endpoint,
            "status": status,
            "error": str(error),
            "date": time.strftime("%d/%m/%Y - %H:%M:%S", time.localtime()),
            "response_time": time.time() - startTime,
        }
    )

    try:
        with open("log.json", "w") as logWrite:
            json.dump(jsonLog, logWrite, indent=4, separators=(",", ": "))
    except OSError:
        logging.warning("Error while logging to log json!")


# log the failed gitlab request and turn it into a http error for the frontend
def raiseApiError(endpoint: str, startTime: float, error: APIError, detail: str):
    statusCode = error.status
    # transport failures (and broken bodies on a successful status) are gateway errors
    if statusCode is None or statusCode < 400:
        statusCode = status.HTTP_504_GATEWAY_TIMEOUT
    logging.error(f"{detail} ERROR: {error}")
    writeLogJson(endpoint, statusCode, startTime, error.message)
    raise HTTPException(
        status_code=statusCode,
        detail=f"{detail} Error: {error.message}",
    )

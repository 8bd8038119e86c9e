from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from gitlab_cms.gitlab.errors import SOURCE, APIError


@dataclass(frozen=True)
class JsonBody:
    value: Any


@dataclass(frozen=True)
class TextBody:
    value: str


# status code plus either a decoded json body or the raw text
@dataclass(frozen=True)
class ApiResponse:
    status: int
    body: JsonBody | TextBody

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


# classify the response by its declared content type (raises ValueError on broken json)
def parseResponse(response: httpx.Response) -> ApiResponse:
    contentType = response.headers.get("Content-Type", "")

    if "json" in contentType:
        # e.g. 204 on branch deletion
        if not response.content:
            return ApiResponse(response.status_code, JsonBody(None))
        return ApiResponse(response.status_code, JsonBody(json.loads(response.text)))

    return ApiResponse(response.status_code, TextBody(response.text))


# pull a readable message out of a gitlab error payload
def errorMessage(payload: Any) -> str:
    if isinstance(payload, dict):
        for key in ("message", "error_description", "error"):
            if payload.get(key):
                return str(payload[key])
    return str(payload)


# text bodies pass the request primitive even on failure (e.g. a proxy's html error page)
def expectPayload(payload: Any, kind: type) -> Any:
    if not isinstance(payload, kind):
        logging.error(f"Expected a {kind.__name__} from GitLab, got: {str(payload)[:200]}")
        raise APIError("Unexpected response from GitLab", None, SOURCE, payload)
    return payload

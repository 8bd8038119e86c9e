import asyncio
import base64
import json

import httpx
import jwt
import pytest
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from fastapi.testclient import TestClient

from conftest import API_ROOT, jsonResponse, mockClient, textResponse
from gitlab_cms.api.dependencies import getBackend, getData
from gitlab_cms.gitlab.backend import GitLab
from gitlab_cms.gitlab.cache import ContentCache
from gitlab_cms.gitlab.config import BackendConfig
from gitlab_cms.gitlab.errors import APIError
from gitlab_cms.models.gitlab.branch import Branch
from main import api_exception_handler, app

routerPrefix = "/cms/api/v1"


# fake gitlab behind the endpoints
def gitlab(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/user"):
        return jsonResponse(200, {"id": 7, "username": "jdoe", "name": "J. Doe"})
    if path.endswith("/repository/tree"):
        return jsonResponse(
            200,
            [{"id": "h1", "name": "a.md", "type": "blob", "path": "posts/a.md", "mode": "100644"}],
        )
    if path.endswith("/repository/blobs/master"):
        filePath = request.url.params["filepath"]
        if filePath.startswith("missing"):
            return jsonResponse(404, {"message": "404 File Not Found"})
        return textResponse(200, f"content of {filePath}")
    if path.endswith("/repository/files"):
        return jsonResponse(404, {"message": "404 File Not Found"})
    if path.endswith("/repository/commits"):
        body = json.loads(request.content)
        return jsonResponse(201, {"id": body["actions"][0]["file_path"]})
    if path.endswith("/repository/branches") and request.method == "POST":
        body = json.loads(request.content)
        return jsonResponse(201, {"name": body["branch"], "commit": {"id": body["ref"]}})
    if "/repository/branches/" in path:
        if request.method == "DELETE":
            return httpx.Response(204)
        return jsonResponse(200, {"name": path.split("/")[-1], "commit": {"id": "c1"}})
    return jsonResponse(404, {"message": "404 Not found"})


# serve the endpoints from a backend that talks to the given fake gitlab
def useGitLab(handler, tmp_path):
    async def backend():
        base = GitLab(
            BackendConfig(repo="jdoe/site", api_root=API_ROOT),
            cache=ContentCache(str(tmp_path / "blobs")),
        )
        authenticated = base.withToken("secret", mockClient(handler))
        try:
            yield authenticated
        finally:
            await authenticated.close()

    app.dependency_overrides[getBackend] = backend


@pytest.fixture
def client(tmp_path):
    useGitLab(gitlab, tmp_path)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_getData(monkeypatch):
    privateKey = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    publicPem = (
        privateKey.public_key()
        .public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    # the .env only holds the body of the key
    keyBody = "\n".join(publicPem.strip().splitlines()[1:-1])
    fernetKey = Fernet.generate_key()
    monkeypatch.setenv("PUBLIC_RSA", keyBody)
    monkeypatch.setenv("FERNET", fernetKey.decode())

    cookie = jwt.encode(
        {"gitlab": Fernet(fernetKey).encrypt(b"gitlab-token").decode()},
        privateKey,
        algorithm="RS256",
    )

    assert getData(cookie)["gitlab"] == "gitlab-token"

    with pytest.raises(HTTPException) as error:
        getData("not-a-jwt")
    assert error.value.status_code == 401


def test_user(client):
    response = client.get(f"{routerPrefix}/content/user")
    assert response.status_code == 200
    assert response.json()["username"] == "jdoe"


def test_entries_by_folder(client):
    response = client.get(
        f"{routerPrefix}/content/entries_by_folder", params={"folder": "posts"}
    )
    assert response.status_code == 200
    assert response.json() == [
        {
            "file": {"path": "posts/a.md", "sha": "h1", "label": None},
            "data": "content of posts/a.md",
        }
    ]


def test_entries_by_files(client):
    response = client.post(
        f"{routerPrefix}/content/entries_by_files",
        json=[{"path": "about.md", "label": "About"}, {"path": "contact.md"}],
    )
    assert response.status_code == 200
    assert {entry["data"] for entry in response.json()} == {
        "content of about.md",
        "content of contact.md",
    }

    failing = client.post(
        f"{routerPrefix}/content/entries_by_files",
        json=[{"path": "about.md"}, {"path": "missing.md"}],
    )
    assert failing.status_code == 404


def test_entry(client):
    response = client.get(f"{routerPrefix}/content/entry", params={"path": "about.md"})
    assert response.status_code == 200
    assert response.json()["data"] == "content of about.md"

    missing = client.get(f"{routerPrefix}/content/entry", params={"path": "missing.md"})
    assert missing.status_code == 404


def test_persist(client):
    body = {
        "entry": {"path": "posts/My Post.md", "raw": "---\ntitle: My Post\n---\n"},
        "mediaFiles": [
            {"path": "img/logo.png", "content": base64.b64encode(b"png").decode()}
        ],
        "commitMessage": "Create Post",
    }

    response = client.put(f"{routerPrefix}/content/persist", json=body)

    assert response.status_code == 200
    assert [receipt["id"] for receipt in response.json()] == [
        "img/logo.png",
        "posts/MyPost.md",
    ]

    broken = dict(body, mediaFiles=[{"path": "img/logo.png", "content": "%%%"}])
    assert client.put(f"{routerPrefix}/content/persist", json=broken).status_code == 400


def test_branches(client):
    created = client.post(
        f"{routerPrefix}/branches", json={"name": "cms/post", "sha": "c0ffee"}
    )
    assert created.status_code == 201
    assert Branch.model_validate_json(created.content).commit.id == "c0ffee"

    branch = client.get(f"{routerPrefix}/branches/draft")
    assert branch.status_code == 200
    assert branch.json()["name"] == "draft"

    deleted = client.delete(f"{routerPrefix}/branches/draft")
    assert deleted.status_code == 200


def test_html_error_pages_are_logged(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    def proxy(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/repository/commits") or "/repository/branches" in path:
            return textResponse(502, "<html>Bad Gateway</html>")
        return gitlab(request)

    useGitLab(proxy, tmp_path)
    try:
        client = TestClient(app)
        persisted = client.put(
            f"{routerPrefix}/content/persist",
            json={"entry": {"path": "a.md", "raw": "A"}, "commitMessage": "Save"},
        )
        branch = client.get(f"{routerPrefix}/branches/draft")
    finally:
        app.dependency_overrides.clear()

    assert persisted.status_code == 504
    assert "Unexpected response from GitLab" in persisted.json()["detail"]
    assert branch.status_code == 504

    with open(tmp_path / "log.json") as logFile:
        log = json.load(logFile)
    assert [(record["endpoint"], record["status"]) for record in log] == [
        ("persist", 504),
        ("getBranch", 504),
    ]


def test_unhandled_api_error_without_status():
    response = asyncio.run(api_exception_handler(None, APIError("timed out", None)))

    assert response.status_code == 504
    assert json.loads(response.body) == {
        "message": "timed out",
        "status": None,
        "source": "GitLab",
    }

import asyncio
import base64
import logging
import re
from dataclasses import dataclass
from enum import Enum

from gitlab_cms.gitlab.api import API
from gitlab_cms.gitlab.errors import NotFoundError
from gitlab_cms.gitlab.response import expectPayload
from gitlab_cms.models.cms.entry import AssetProxy, TextFile

# gitlab only allows letters, digits, "_", "-", "@", "." and "/" in file paths
UNSAFE_PATH_CHARS = re.compile(r"[^a-zA-Z0-9_\-@./]")


class ActionKind(str, Enum):
    create = "create"
    update = "update"


@dataclass(frozen=True)
class CommitAction:
    action: ActionKind
    file_path: str
    content: str
    encoding: str = "base64"

    def toDict(self) -> dict:
        return {
            "action": self.action.value,
            "file_path": self.file_path,
            "content": self.content,
            "encoding": self.encoding,
        }


# disallowed characters are dropped, the path is never rejected
def safeFilepath(filepath: str) -> str:
    return UNSAFE_PATH_CHARS.sub("", filepath)


def toBase64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("utf-8")


def encodeFile(file: AssetProxy | TextFile) -> str:
    match file:
        case AssetProxy():
            return file.toBase64()
        case TextFile(raw=raw):
            return toBase64(raw)
        case _:
            raise TypeError(f"Can't encode {type(file).__name__} for a commit")


# turns in-memory files into commit actions and sends them to the repo
class CommitBuilder:
    def __init__(self, api: API):
        self.api = api

    # create or update, depending on whether the file is already on the branch
    async def buildAction(self, file: AssetProxy | TextFile) -> CommitAction:
        filePath = safeFilepath(file.path)
        content = encodeFile(file)

        try:
            await self.api.getFile(filePath)
            kind = ActionKind.update
        except NotFoundError:
            kind = ActionKind.create

        logging.debug(f"{kind.value} {filePath}")
        return CommitAction(action=kind, file_path=filePath, content=content)

    async def persistFile(self, file: AssetProxy | TextFile, commitMessage: str):
        action = await self.buildAction(file)
        receipt = await self.api.commit(commitMessage, [action.toDict()])
        return expectPayload(receipt, dict)

    # media files go first, the entry last; every file gets its own commit
    # unless singleCommit is set, in which case one commit carries all actions
    async def persistFiles(
        self,
        entry: AssetProxy | TextFile,
        mediaFiles: list[AssetProxy | TextFile] | None = None,
        options: dict | None = None,
    ) -> list:
        options = options or {}
        commitMessage = options.get("commitMessage", "")
        files = list(mediaFiles or []) + [entry]

        if options.get("singleCommit"):
            actions = await asyncio.gather(*[self.buildAction(file) for file in files])
            receipt = await self.api.commit(
                commitMessage, [action.toDict() for action in actions]
            )
            expectPayload(receipt, dict)
            logging.info(f"Committed {len(files)} files in one commit to {self.api.repo}")
            return [receipt]

        receipts = await asyncio.gather(
            *[self.persistFile(file, commitMessage) for file in files]
        )
        logging.info(f"Committed {len(files)} files to {self.api.repo}")
        return list(receipts)

# the source tag attached to every error raised by this backend
SOURCE = "GitLab"


class ConfigurationError(Exception):
    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


# raised when the editorial workflow is selected, gitlab has no support for it
class EditorialWorkflowError(ConfigurationError):
    pass


# any transport failure or remote rejection
class APIError(Exception):
    def __init__(
        self,
        message: str,
        status: int | None = None,
        source: str = SOURCE,
        payload=None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.source = source
        self.payload = payload

    def toDict(self) -> dict:
        return {"message": self.message, "status": self.status, "source": self.source}

    def __str__(self) -> str:
        return f"{self.source} API error ({self.status}): {self.message}"


# status 404; persisting reads this as "the file has to be created"
class NotFoundError(APIError):
    pass


# builds the matching error for a rejected request
def errorFor(message: str, status: int | None, payload=None) -> APIError:
    if status == 404:
        return NotFoundError(message, status, SOURCE, payload)
    return APIError(message, status, SOURCE, payload)

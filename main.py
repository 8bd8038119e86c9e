import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from gitlab_cms.api.routers import api_router
from gitlab_cms.gitlab.errors import APIError, ConfigurationError

description = """
Reads entries out of a GitLab repository and saves them back as commits.

Files with a known blob hash are served from a persistent cache, everything else is read live.
"""

logging.basicConfig(
    filename="backend.log",
    filemode="a",
    format="%(asctime)s-%(levelname)s-%(message)s",
    datefmt="%d-%b-%y %H:%M:%S",
    level=logging.DEBUG,
)

app = FastAPI(
    title="GitLab CMS API",
    summary="Content backend reading from and committing to a GitLab repository",
    docs_url="/cms/api/v1/docs",
    openapi_url="/cms/api/v1/openapi.json",
    version="0.1.0",
    description=description,
)

# clear the current log
with open("log.json", "w") as log:
    log.write("[]")

load_dotenv()

# valid frontend url origins
origins = [
    "https://localhost:5173",
    "https://localhost:4173",
    "http://localhost:5173",
    "http://localhost:4173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    exc_str = f"{exc}".replace("\n", " ").replace("   ", " ")
    logging.debug(f"Cookies: {request.cookies}")
    logging.error(f"{exc}")
    content = {
        "status_code": 422,
        "detail": f"Try clearing your browser data and cookies! ERROR: {exc_str}",
    }
    return JSONResponse(
        content=content, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
    )


# gitlab errors that weren't handled by an endpoint keep their {message, status, source} shape
@app.exception_handler(APIError)
async def api_exception_handler(request: Request, exc: APIError):
    logging.error(f"Unhandled {exc}")
    statusCode = (
        exc.status
        if exc.status and exc.status >= 400
        else status.HTTP_504_GATEWAY_TIMEOUT
    )
    return JSONResponse(content=exc.toDict(), status_code=statusCode)


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(request: Request, exc: ConfigurationError):
    logging.error(f"Configuration error: {exc.message}")
    return JSONResponse(
        content={"detail": exc.message},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )

from fastapi import APIRouter


from gitlab_cms.api.endpoints import branches, content


api_router = APIRouter(prefix="/cms/api/v1")


api_router.include_router(content.router, prefix="/content", tags=["Content"])
api_router.include_router(branches.router, prefix="/branches", tags=["Branches"])

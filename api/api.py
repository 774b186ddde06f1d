from fastapi import APIRouter
from api.auth_api import router as auth_router
from api.poll_api import router as poll_router
from api.vote_api import router as vote_router
from api.comment_api import router as comment_router
from api.share_api import router as share_router
from api.admin_api import router as admin_router


api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(poll_router, tags=["poll"])
api_router.include_router(vote_router, tags=["vote"])
api_router.include_router(comment_router, tags=["comment"])
api_router.include_router(share_router, tags=["share"])
api_router.include_router(admin_router)

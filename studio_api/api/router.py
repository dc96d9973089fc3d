from fastapi import APIRouter

from studio_api.api.endpoints import videos, webhook

api_router = APIRouter()

# Include all endpoint routers; the webhook goes first so /videos/webhook never matches /{video_id}
api_router.include_router(webhook.router, prefix="/videos", tags=["Webhooks"])
api_router.include_router(videos.router, prefix="/videos", tags=["Videos"])

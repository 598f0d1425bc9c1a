from fastapi import APIRouter
from webinar_signup.api.v1.endpoints import registration

api_router = APIRouter()

api_router.include_router(registration.router, tags=["Registration"])

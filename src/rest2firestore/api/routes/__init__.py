from fastapi import APIRouter

from rest2firestore.api.routes.documents import router as documents_router
from rest2firestore.api.routes.healthz import router as healthz_router

api_router = APIRouter()
api_router.include_router(healthz_router)
api_router.include_router(documents_router)

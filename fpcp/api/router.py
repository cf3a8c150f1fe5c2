from fastapi import APIRouter

from fpcp.api.email_queue import router as email_queue_router
from fpcp.api.functions import router as functions_router

api_router = APIRouter()
api_router.include_router(functions_router)
api_router.include_router(email_queue_router)

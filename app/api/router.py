from fastapi import APIRouter
from api.routes.system import router as system_router
from api.routes.persister import router as persister_router

api_router = APIRouter()

api_router.include_router(system_router)
api_router.include_router(persister_router)

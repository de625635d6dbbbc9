from fastapi import APIRouter
from doughmain.api.endpoints import admin, console, plaid, profile

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(plaid.router)
api_router.include_router(admin.router)
api_router.include_router(console.router)
api_router.include_router(profile.router)

# api/v1/router.py
from fastapi import APIRouter

from . import auth, users

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(users.router, prefix="/user", tags=["Users"])

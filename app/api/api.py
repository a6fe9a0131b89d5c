from fastapi import APIRouter
from app.api.v1 import appointments, merges, family_members

api_router = APIRouter()

api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(merges.router, prefix="/appointments", tags=["merges"])
api_router.include_router(family_members.router, prefix="/patient/family-members", tags=["family-members"])

from fastapi import APIRouter
from app.meal_plans import router as plan

api_router = APIRouter()


@api_router.get("/health")
async def health_check():
    return {"status": "ok", "message": "Chapter Two backend alive"}


api_router.include_router(plan.router, prefix="/plan")
# legacy mount kept for older clients
api_router.include_router(plan.router, prefix="/meal", include_in_schema=False)

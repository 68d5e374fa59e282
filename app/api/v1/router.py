from fastapi import APIRouter
from app.api.v1.endpoints import leads, batches, appointments, performance, sales

api_router = APIRouter()
api_router.include_router(leads.router, prefix="/leads", tags=["leads"])
api_router.include_router(batches.router, prefix="/batches", tags=["batches"])
api_router.include_router(appointments.router, prefix="/agent", tags=["appointments"])
api_router.include_router(performance.router, prefix="/performance", tags=["performance"])
api_router.include_router(sales.router, prefix="/sales", tags=["sales"])

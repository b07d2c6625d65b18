from fastapi import APIRouter

from app.api.routes import cities, health

# Mounted at the application root: GET / is the database health check.
root_router = APIRouter()
root_router.include_router(health.router)

api_router = APIRouter()
api_router.include_router(cities.router)

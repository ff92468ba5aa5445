from fastapi import APIRouter

from mealforge_import.app.api.routes import imports, ingredients, providers

api_router = APIRouter()
api_router.include_router(imports.router)
api_router.include_router(ingredients.router)
api_router.include_router(providers.router)

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from mealforge_import.app.api.deps import get_pipeline
from mealforge_import.app.schemas.imports import ProviderStatus, ProviderUpdate
from mealforge_import.app.services.extraction.models import ProviderConfig
from mealforge_import.app.services.extraction.pipeline import RecipeImportPipeline

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=List[ProviderStatus])
def list_providers(pipeline: RecipeImportPipeline = Depends(get_pipeline)):
    statuses = []
    for config in pipeline.registry.list_configs():
        adapter = pipeline.registry.adapter(config.name)
        statuses.append(
            ProviderStatus(
                config=config,
                configured=adapter.is_configured(),
                rate_limit=pipeline.rate_limiter.window(config.name),
            )
        )
    return statuses


@router.patch("/{name}", response_model=ProviderConfig)
def update_provider(
    name: str,
    payload: ProviderUpdate,
    pipeline: RecipeImportPipeline = Depends(get_pipeline),
):
    try:
        return pipeline.registry.set_enabled(name, payload.enabled)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Provider not found: {name}")

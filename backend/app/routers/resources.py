# backend/app/routers/resources.py

from fastapi import APIRouter, Depends

from ..schemas.calendar import ResourceRead
from ..services.slots import AllocatorConfig, get_allocator_config

router = APIRouter(prefix="/resources", tags=["resources"])


@router.get("", response_model=list[ResourceRead])
def list_resources(config: AllocatorConfig = Depends(get_allocator_config)):
    return [
        ResourceRead(resource_id=r, is_primary=r == config.primary_resource_id)
        for r in config.ordered_resources
    ]

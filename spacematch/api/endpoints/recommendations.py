from fastapi import APIRouter, Depends

from spacematch.api.dependencies import ServiceContainer, get_container, get_user_id
from spacematch.models.scoring import Recommendation, SearchCriteria

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.post("", response_model=list[Recommendation])
async def suggest_spaces(
    criteria: SearchCriteria | None = None,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> list[Recommendation]:
    return await container.recommendation_engine.suggest_spaces_based_on_history(user_id, criteria)

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from spacematch.api.dependencies import ServiceContainer, get_container, get_user_id
from spacematch.api.endpoints._listings import resolve_listings
from spacematch.models.scoring import Match

router = APIRouter(prefix="/matches", tags=["matching"])


class MatchRequest(BaseModel):
    listing_ids: list[str] | None = Field(
        default=None, description="Candidate listings; every active listing when omitted"
    )


@router.post("", response_model=list[Match])
async def find_optimal_matches(
    payload: MatchRequest,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> list[Match]:
    profile = await container.profile_builder.build_profile(user_id)
    listings = await resolve_listings(container, payload.listing_ids)
    return await container.match_engine.find_optimal_matches(profile, listings)

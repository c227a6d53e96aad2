from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from spacematch.api.dependencies import ServiceContainer, get_container, get_user_id
from spacematch.api.endpoints._listings import resolve_listings
from spacematch.models.scoring import RankedResult

router = APIRouter(tags=["search"])


class SearchRequest(BaseModel):
    query: str = ""
    listing_ids: list[str] | None = Field(default=None, description="Result set to re-rank; all active when omitted")


class TrackSearchRequest(BaseModel):
    query: str
    filters: dict[str, Any] = Field(default_factory=dict)
    results_clicked: list[str] = Field(default_factory=list)


@router.post("/search", response_model=list[RankedResult])
async def rank_search_results(
    payload: SearchRequest,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> list[RankedResult]:
    profile = await container.profile_builder.build_profile(user_id)
    listings = await resolve_listings(container, payload.listing_ids)
    return await container.search_ranker.rank_search_results(payload.query, listings, profile)


@router.post("/searches", status_code=status.HTTP_202_ACCEPTED)
async def track_search(
    payload: TrackSearchRequest,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> dict[str, str]:
    await container.profile_builder.track_search_behavior(
        user_id, payload.query, payload.filters, payload.results_clicked
    )
    return {"status": "accepted"}

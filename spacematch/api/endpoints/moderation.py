from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from spacematch.api.dependencies import ServiceContainer, get_container, get_optional_user_id, get_user_id
from spacematch.models.flag import Flag, FlagStatus, FlagType, TrustAssessment

router = APIRouter(prefix="/moderation", tags=["moderation"])


class CheckRequest(BaseModel):
    owner_id: str | None = None


class ReportRequest(BaseModel):
    flag_type: FlagType
    reason: str


class FlagUpdateRequest(BaseModel):
    status: FlagStatus
    admin_notes: str | None = None


class DismissRequest(BaseModel):
    admin_notes: str | None = None


@router.post("/listings/{listing_id}/check", response_model=TrustAssessment)
async def check_listing(
    listing_id: str,
    payload: CheckRequest | None = None,
    container: ServiceContainer = Depends(get_container),
) -> TrustAssessment:
    owner_id = payload.owner_id if payload else None
    return await container.moderation.check_listing_for_auto_flag(listing_id, owner_id)


@router.post("/listings/{listing_id}/reports", status_code=status.HTTP_201_CREATED, response_model=Flag)
async def report_listing(
    listing_id: str,
    payload: ReportRequest,
    reporter_id: str | None = Depends(get_optional_user_id),
    container: ServiceContainer = Depends(get_container),
):
    result = await container.moderation.report_listing(listing_id, reporter_id, payload.flag_type, payload.reason)
    if not result.success:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": result.error})
    return result.flag


@router.patch("/flags/{flag_id}", response_model=Flag)
async def update_flag(
    flag_id: str,
    payload: FlagUpdateRequest,
    reviewer_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> Flag:
    return await container.moderation.update_flag_status(flag_id, payload.status, reviewer_id, payload.admin_notes)


@router.post("/listings/{listing_id}/dismiss")
async def dismiss_all(
    listing_id: str,
    payload: DismissRequest | None = None,
    reviewer_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
) -> dict[str, int]:
    notes = payload.admin_notes if payload else None
    dismissed = await container.moderation.dismiss_all_flags(listing_id, reviewer_id, notes)
    return {"dismissed": dismissed, "flag_count": await container.moderation.get_flag_count(listing_id)}


@router.get("/listings/{listing_id}/flags", response_model=list[Flag])
async def listing_flags(listing_id: str, container: ServiceContainer = Depends(get_container)) -> list[Flag]:
    return await container.moderation.get_listing_flags(listing_id)


@router.get("/flags", response_model=list[Flag])
async def flagged_listings(
    status: FlagStatus = FlagStatus.PENDING, container: ServiceContainer = Depends(get_container)
) -> list[Flag]:
    return await container.moderation.get_flagged_listings(status)

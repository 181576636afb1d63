"""
Artisan API - discovery (public), upgrade requests (authenticated users),
profile self-service (artisans) and review (admins).

Every response uses the envelope from core.responses; ServiceError raised by
the services is rendered by the handler registered in main.create_app().
"""
from typing import Optional, List, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from artisan_hub.app.api.deps import get_session
from artisan_hub.app.core.auth import CurrentUser, get_current_user, require_admin, require_artisan
from artisan_hub.app.core.limiter import limiter, DISCOVERY_RATE_LIMIT
from artisan_hub.app.core.logging import get_logger
from artisan_hub.app.core import responses
from artisan_hub.app.schemas import (
    UpgradeRequestCreate,
    UpgradeRequestUpdate,
    ApproveBody,
    RejectBody,
    ArtisanProfileUpdate,
    VerifyBody,
)
from artisan_hub.app.services.artisans import ArtisanProfileService, ArtisanProfileNotFoundError
from artisan_hub.app.services.upgrade_requests import UpgradeRequestService

router = APIRouter(prefix="/api/artisans", tags=["artisans"])
logger = get_logger(__name__)

SortBy = Literal["rating", "review_count", "created_at", "follower_count", "total_sales"]


def _split_specialties(values: Optional[List[str]]) -> Optional[List[str]]:
    """Accept both ?specialties=a&specialties=b and ?specialties=a,b"""
    if not values:
        return None
    names = [part.strip() for value in values for part in value.split(",")]
    return [n for n in names if n] or None


# --- Discovery (public) ---

@router.get("/search")
@limiter.limit(DISCOVERY_RATE_LIMIT)
async def search_artisans(
    request: Request,
    search: Optional[str] = Query(None, max_length=100),
    specialties: Optional[List[str]] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    is_verified: Optional[bool] = Query(None),
    sort_by: SortBy = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    """Search artisans by text, specialties, rating and verification."""
    filters = {
        "search": search.strip() if search else None,
        "specialties": _split_specialties(specialties),
        "min_rating": min_rating,
        "is_verified": is_verified,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }
    result = await ArtisanProfileService(session).search(filters, page=page, limit=limit)
    return responses.paginated(result, "Artisans retrieved successfully")


@router.get("/top")
@limiter.limit(DISCOVERY_RATE_LIMIT)
async def get_top_artisans(
    request: Request,
    limit: int = Query(10, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
):
    data = await ArtisanProfileService(session).get_top(limit)
    return responses.success(data, "Top artisans retrieved successfully")


@router.get("/featured")
@limiter.limit(DISCOVERY_RATE_LIMIT)
async def get_featured_artisans(request: Request, session: AsyncSession = Depends(get_session)):
    data = await ArtisanProfileService(session).get_featured()
    return responses.success(data, "Featured artisans retrieved successfully")


@router.get("/specialty/{specialty}")
@limiter.limit(DISCOVERY_RATE_LIMIT)
async def get_artisans_by_specialty(
    request: Request,
    specialty: str,
    limit: int = Query(10, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
):
    data = await ArtisanProfileService(session).get_by_specialty(specialty.strip(), limit)
    return responses.success(data, "Artisans retrieved successfully")


@router.get("/suggestions")
async def get_suggested_artisans(
    limit: int = Query(5, ge=1, le=20),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Artisans the current user does not follow yet."""
    data = await ArtisanProfileService(session).get_suggested(current_user.id, limit)
    return responses.success(data, "Suggested artisans retrieved successfully")


# --- Profiles ---

@router.get("/profile/me")
async def get_my_profile(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    data = await ArtisanProfileService(session).get_my_profile(current_user.id)
    return responses.success(data, "Artisan profile retrieved successfully")


@router.patch("/profile")
async def update_my_profile(
    body: ArtisanProfileUpdate,
    current_user: CurrentUser = Depends(require_artisan),
    session: AsyncSession = Depends(get_session),
):
    data = await ArtisanProfileService(session).update_my_profile(
        current_user.id,
        body.model_dump(exclude_unset=True),
    )
    return responses.success(data, "Artisan profile updated successfully")


@router.delete("/profile")
async def delete_my_profile(
    current_user: CurrentUser = Depends(require_artisan),
    session: AsyncSession = Depends(get_session),
):
    await ArtisanProfileService(session).delete_my_profile(current_user.id)
    return responses.success(None, "Artisan profile deleted successfully")


@router.get("/profile/user/{user_id}")
async def get_profile_by_user(user_id: str, session: AsyncSession = Depends(get_session)):
    data = await ArtisanProfileService(session).get_profile_by_user(user_id)
    if data is None:
        raise ArtisanProfileNotFoundError()
    return responses.success(data, "Artisan profile retrieved successfully")


@router.get("/profile/{profile_id}")
async def get_profile(profile_id: str, session: AsyncSession = Depends(get_session)):
    data = await ArtisanProfileService(session).get_profile(profile_id)
    if data is None:
        raise ArtisanProfileNotFoundError()
    return responses.success(data, "Artisan profile retrieved successfully")


# --- Upgrade requests (customer side) ---

@router.post("/upgrade-request")
async def submit_upgrade_request(
    body: UpgradeRequestCreate,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    data = await UpgradeRequestService(session).submit(current_user.id, body.model_dump())
    return responses.created(data, "Upgrade request submitted successfully")


@router.get("/upgrade-request/status")
async def get_upgrade_request_status(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    data = await UpgradeRequestService(session).get_status(current_user.id)
    return responses.success(data, "Upgrade request status retrieved successfully")


@router.patch("/upgrade-request")
async def amend_upgrade_request(
    body: UpgradeRequestUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Edit the current user's pending request."""
    data = await UpgradeRequestService(session).amend(
        current_user.id,
        body.model_dump(exclude_unset=True),
    )
    return responses.success(data, "Upgrade request updated successfully")


@router.patch("/upgrade-request/{request_id}")
async def amend_upgrade_request_by_id(
    request_id: str,
    body: UpgradeRequestUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    data = await UpgradeRequestService(session).amend(
        current_user.id,
        body.model_dump(exclude_unset=True),
        request_id=request_id,
    )
    return responses.success(data, "Upgrade request updated successfully")


# --- Admin ---

@router.get("/admin/upgrade-requests")
async def list_upgrade_requests(
    status: Optional[Literal["PENDING", "APPROVED", "REJECTED"]] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    result = await UpgradeRequestService(session).list_requests(status=status, page=page, limit=limit)
    return responses.paginated(result, "Upgrade requests retrieved successfully")


@router.get("/admin/upgrade-requests/{request_id}")
async def get_upgrade_request(
    request_id: str,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    data = await UpgradeRequestService(session).get_request(request_id)
    return responses.success(data, "Upgrade request retrieved successfully")


@router.post("/admin/upgrade-requests/{request_id}/approve")
async def approve_upgrade_request(
    request_id: str,
    body: Optional[ApproveBody] = None,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    notes = body.admin_notes if body else None
    logger.info("Approving upgrade request", request_id=request_id, admin_id=admin.id)
    data = await UpgradeRequestService(session).approve(request_id, admin.id, notes or None)
    return responses.success(data, "Upgrade request approved successfully")


@router.post("/admin/upgrade-requests/{request_id}/reject")
async def reject_upgrade_request(
    request_id: str,
    body: RejectBody,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    logger.info("Rejecting upgrade request", request_id=request_id, admin_id=admin.id)
    data = await UpgradeRequestService(session).reject(request_id, admin.id, body.admin_notes)
    return responses.success(data, "Upgrade request rejected successfully")


@router.patch("/admin/verify/{profile_id}")
async def verify_artisan(
    profile_id: str,
    body: VerifyBody,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    data = await ArtisanProfileService(session).verify(profile_id, body.is_verified)
    message = "Artisan verified successfully" if body.is_verified else "Artisan verification removed"
    return responses.success(data, message)

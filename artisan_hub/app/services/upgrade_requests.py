# artisan_hub/app/services/upgrade_requests.py
"""
Upgrade workflow - a customer asks to become an artisan, an admin decides.

    NONE -> PENDING -> APPROVED | REJECTED

PENDING is the only state the owner can edit. Approval promotes the user and
creates the artisan profile in the same transaction as the status change.
A resubmission after rejection creates a new request; reviewed requests are
kept as history.
"""
from typing import Optional, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from artisan_hub.app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from artisan_hub.app.core.logging import get_logger
from artisan_hub.app.core.metrics import upgrade_requests_total
from artisan_hub.app.core.pagination import build_page
from artisan_hub.app.models.artisan import UpgradeRequestStatus
from artisan_hub.app.models.user import UserRole
from artisan_hub.app.repositories.artisans import ArtisanProfileRepository
from artisan_hub.app.repositories.base import atomic
from artisan_hub.app.repositories.upgrade_requests import UpgradeRequestRepository
from artisan_hub.app.repositories.users import UserRepository
from artisan_hub.app.services.serializers import upgrade_request_dict, artisan_profile_dict

logger = get_logger(__name__)


class UpgradeRequestNotFoundError(NotFoundError):
    error_code = "UPGRADE_REQUEST_NOT_FOUND"

    def __init__(self, message: str = "Upgrade request not found"):
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    error_code = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")


class AlreadyArtisanError(ConflictError):
    error_code = "ALREADY_ARTISAN"

    def __init__(self):
        super().__init__("User is already an artisan")


class UpgradeRequestExistsError(ConflictError):
    error_code = "UPGRADE_REQUEST_EXISTS"


class UpgradeRequestService:
    """Service class for the customer -> artisan upgrade workflow."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.requests = UpgradeRequestRepository(session)
        self.users = UserRepository(session)
        self.profiles = ArtisanProfileRepository(session)

    async def submit(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a PENDING upgrade request for the user.

        Raises:
            UserNotFoundError: unknown user
            AlreadyArtisanError: user already has the ARTISAN role or a profile
            UpgradeRequestExistsError: a PENDING or APPROVED request exists
        """
        async with atomic(self.session, "upgrade_requests.submit"):
            user = await self.users.find_by_id(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            if user.role == UserRole.ARTISAN or await self.profiles.find_by_user_id(user_id):
                raise AlreadyArtisanError()

            existing = await self.requests.find_latest_by_user(
                user_id,
                statuses=(UpgradeRequestStatus.PENDING, UpgradeRequestStatus.APPROVED),
            )
            if existing is not None:
                if existing.status == UpgradeRequestStatus.PENDING:
                    raise UpgradeRequestExistsError("You already have a pending upgrade request")
                raise UpgradeRequestExistsError("Your upgrade request has already been approved")

            request = await self.requests.create(user, data)

        upgrade_requests_total.labels(action="submitted").inc()
        logger.info("Upgrade request submitted", request_id=request.id, user_id=user_id)
        return upgrade_request_dict(request, owner=user)

    async def amend(
        self,
        user_id: str,
        data: Dict[str, Any],
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Overwrite the supplied fields of a PENDING request owned by the user.

        Without request_id the user's pending request is targeted.
        """
        async with atomic(self.session, "upgrade_requests.amend"):
            if request_id is None:
                request = await self.requests.find_latest_by_user(
                    user_id, statuses=(UpgradeRequestStatus.PENDING,)
                )
                if request is None:
                    raise UpgradeRequestNotFoundError("No pending upgrade request found")
            else:
                request = await self.requests.find_by_id(request_id)
                if request is None:
                    raise UpgradeRequestNotFoundError()
                if request.user_id != user_id:
                    raise ForbiddenError("You can only update your own upgrade request")
                if request.status != UpgradeRequestStatus.PENDING:
                    raise InvalidStateError(
                        f"Cannot update a request with status {request.status}"
                    )

            await self.requests.update_fields(request, data)

        logger.info(
            "Upgrade request amended",
            request_id=request.id,
            user_id=user_id,
            fields=sorted(data.keys()),
        )
        return upgrade_request_dict(request, owner=request.user)

    async def get_status(self, user_id: str) -> Dict[str, Any]:
        """Latest request of the user, or {"has_request": False} if none was ever made."""
        request = await self.requests.find_latest_by_user(user_id)
        if request is None:
            return {"has_request": False}
        data = upgrade_request_dict(request)
        data["has_request"] = True
        return data

    async def get_request(self, request_id: str) -> Dict[str, Any]:
        request = await self.requests.find_by_id(request_id)
        if request is None:
            raise UpgradeRequestNotFoundError()
        return upgrade_request_dict(request, owner=request.user)

    async def approve(
        self,
        request_id: str,
        admin_id: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Approve a PENDING request.

        The status change, the role promotion and the profile creation commit
        together or not at all.

        Returns:
            {"request": {...}, "profile": {...}}
        """
        async with atomic(self.session, "upgrade_requests.approve"):
            request = await self.requests.find_by_id(request_id)
            if request is None:
                raise UpgradeRequestNotFoundError()
            if request.status != UpgradeRequestStatus.PENDING:
                raise InvalidStateError(f"Request has already been {request.status.lower()}")

            # Another admin may have reviewed it since the read above
            if not await self.requests.transition(
                request_id, UpgradeRequestStatus.APPROVED, admin_id, notes
            ):
                raise InvalidStateError("Request is no longer pending")

            if not await self.users.update_role(request.user_id, UserRole.ARTISAN):
                raise UserNotFoundError(request.user_id)

            profile = await self.profiles.create_from_request(request)

            request = await self.requests.find_by_id(request_id, refresh=True)
            profile = await self.profiles.reload(profile.id)

        upgrade_requests_total.labels(action="approved").inc()
        logger.info(
            "Upgrade request approved",
            request_id=request_id,
            admin_id=admin_id,
            user_id=request.user_id,
            profile_id=profile.id,
        )
        return {
            "request": upgrade_request_dict(request, owner=request.user),
            "profile": artisan_profile_dict(profile, owner=profile.user),
        }

    async def reject(self, request_id: str, admin_id: str, notes: Optional[str]) -> Dict[str, Any]:
        """Reject a PENDING request. Notes are mandatory so the customer knows why."""
        if notes is None or not notes.strip():
            raise ValidationError("Admin notes are required when rejecting a request")

        async with atomic(self.session, "upgrade_requests.reject"):
            request = await self.requests.find_by_id(request_id)
            if request is None:
                raise UpgradeRequestNotFoundError()
            if request.status != UpgradeRequestStatus.PENDING:
                raise InvalidStateError(f"Request has already been {request.status.lower()}")

            if not await self.requests.transition(
                request_id, UpgradeRequestStatus.REJECTED, admin_id, notes.strip()
            ):
                raise InvalidStateError("Request is no longer pending")

            request = await self.requests.find_by_id(request_id, refresh=True)

        upgrade_requests_total.labels(action="rejected").inc()
        logger.info("Upgrade request rejected", request_id=request_id, admin_id=admin_id)
        return upgrade_request_dict(request, owner=request.user)

    async def list_requests(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """Newest first, each item with its owner's public identity."""
        if status is not None and status not in UpgradeRequestStatus.ALL:
            raise ValidationError(f"status must be one of {', '.join(UpgradeRequestStatus.ALL)}")
        items, total = await self.requests.list_requests(status, page, limit)
        return build_page(
            [upgrade_request_dict(r, owner=r.user) for r in items],
            total,
            page,
            limit,
        )

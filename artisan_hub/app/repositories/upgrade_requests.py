# artisan_hub/app/repositories/upgrade_requests.py
"""
Upgrade request store.

Status transitions go through ``transition``: an UPDATE conditioned on the
row still being PENDING, so two admins racing on the same request cannot both
win.
"""
from datetime import datetime
from typing import Optional, List, Tuple, Iterable, Dict, Any

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError

from artisan_hub.app.core.exceptions import ConflictError
from artisan_hub.app.models.artisan import ArtisanUpgradeRequest, UpgradeRequestStatus
from artisan_hub.app.models.user import User
from artisan_hub.app.repositories.base import BaseRepository, storage_operation, violates

# Partial unique index on (user_id) WHERE status = 'PENDING'
PENDING_PER_USER_INDEX = "uq_artisan_upgrade_requests_pending_user"

# Fields the owner may set on submit / amend
MUTABLE_FIELDS = (
    "shop_name",
    "shop_description",
    "specialties",
    "experience",
    "website",
    "social_media",
    "reason",
    "images",
    "certificates",
    "identity_proof",
)


class UpgradeRequestRepository(BaseRepository):

    @storage_operation("upgrade_requests.find_by_id")
    async def find_by_id(self, request_id: str, refresh: bool = False) -> Optional[ArtisanUpgradeRequest]:
        query = select(ArtisanUpgradeRequest).where(ArtisanUpgradeRequest.id == request_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    @storage_operation("upgrade_requests.find_latest_by_user")
    async def find_latest_by_user(
        self,
        user_id: str,
        statuses: Optional[Iterable[str]] = None,
    ) -> Optional[ArtisanUpgradeRequest]:
        """Most recent request of the user, optionally restricted to some statuses."""
        query = select(ArtisanUpgradeRequest).where(ArtisanUpgradeRequest.user_id == user_id)
        if statuses is not None:
            query = query.where(ArtisanUpgradeRequest.status.in_(tuple(statuses)))
        query = query.order_by(
            ArtisanUpgradeRequest.created_at.desc(),
            ArtisanUpgradeRequest.id.desc(),
        ).limit(1)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    @storage_operation("upgrade_requests.create")
    async def create(self, user: User, data: Dict[str, Any]) -> ArtisanUpgradeRequest:
        request = ArtisanUpgradeRequest(
            user=user,
            shop_name=data["shop_name"],
            shop_description=data.get("shop_description"),
            specialties=list(data.get("specialties") or []),
            experience=data.get("experience"),
            website=data.get("website"),
            social_media=dict(data.get("social_media") or {}),
            reason=data.get("reason"),
            images=list(data.get("images") or []),
            certificates=list(data.get("certificates") or []),
            identity_proof=data.get("identity_proof"),
            status=UpgradeRequestStatus.PENDING,
        )
        self.session.add(request)
        try:
            await self.session.flush()
        except IntegrityError as e:
            if not violates(e, PENDING_PER_USER_INDEX, "artisan_upgrade_requests.user_id"):
                raise
            raise ConflictError(
                "You already have a pending upgrade request",
                error_code="UPGRADE_REQUEST_EXISTS",
            )
        return request

    @storage_operation("upgrade_requests.update_fields")
    async def update_fields(self, request: ArtisanUpgradeRequest, data: Dict[str, Any]) -> ArtisanUpgradeRequest:
        for field, value in data.items():
            if field not in MUTABLE_FIELDS:
                continue
            if field in ("specialties", "images", "certificates"):
                value = list(value or [])
            elif field == "social_media":
                value = dict(value or {})
            setattr(request, field, value)
        request.updated_at = datetime.now()
        await self.session.flush()
        return request

    @storage_operation("upgrade_requests.transition")
    async def transition(
        self,
        request_id: str,
        new_status: str,
        admin_id: str,
        admin_notes: Optional[str],
    ) -> bool:
        """
        Move a PENDING request to a terminal status.

        Returns False when no PENDING row matched (unknown id or already
        reviewed); the caller decides which error that is.
        """
        now = datetime.now()
        result = await self.session.execute(
            update(ArtisanUpgradeRequest)
            .where(
                ArtisanUpgradeRequest.id == request_id,
                ArtisanUpgradeRequest.status == UpgradeRequestStatus.PENDING,
            )
            .values(
                status=new_status,
                admin_notes=admin_notes,
                reviewed_by=admin_id,
                reviewed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @storage_operation("upgrade_requests.list")
    async def list_requests(
        self,
        status: Optional[str],
        page: int,
        limit: int,
    ) -> Tuple[List[ArtisanUpgradeRequest], int]:
        count_query = select(func.count(ArtisanUpgradeRequest.id))
        query = select(ArtisanUpgradeRequest)
        if status:
            count_query = count_query.where(ArtisanUpgradeRequest.status == status)
            query = query.where(ArtisanUpgradeRequest.status == status)

        total = (await self.session.execute(count_query)).scalar() or 0

        query = (
            query.order_by(
                ArtisanUpgradeRequest.created_at.desc(),
                ArtisanUpgradeRequest.id.desc(),
            )
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

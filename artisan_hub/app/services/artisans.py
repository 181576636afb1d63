# artisan_hub/app/services/artisans.py
"""
Artisan profiles - discovery queries, owner self-service and the counter
hooks used by the review and order modules.
"""
from typing import Optional, Dict, Any, List

from sqlalchemy.ext.asyncio import AsyncSession

from artisan_hub.app.core.exceptions import NotFoundError, ValidationError
from artisan_hub.app.core.logging import get_logger
from artisan_hub.app.core.pagination import build_page
from artisan_hub.app.models.user import UserRole
from artisan_hub.app.repositories.artisans import ArtisanProfileRepository, SORT_COLUMNS
from artisan_hub.app.repositories.base import atomic
from artisan_hub.app.repositories.users import UserRepository
from artisan_hub.app.services.serializers import artisan_profile_dict

logger = get_logger(__name__)

FEATURED_COUNT = 5


class ArtisanProfileNotFoundError(NotFoundError):
    error_code = "ARTISAN_PROFILE_NOT_FOUND"

    def __init__(self, message: str = "Artisan profile not found"):
        super().__init__(message)


def _profiles(rows) -> List[Dict[str, Any]]:
    return [artisan_profile_dict(p, owner=p.user) for p in rows]


class ArtisanProfileService:
    """Service class for artisan profile reads and edits."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.profiles = ArtisanProfileRepository(session)
        self.users = UserRepository(session)

    # --- Discovery ---

    async def search(self, filters: Dict[str, Any], page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """
        Filtered, sorted, paginated profile listing.

        Args:
            filters: search, specialties, min_rating, is_verified, sort_by, sort_order
                     (missing keys mean "no filter" / defaults)
        """
        sort_by = filters.get("sort_by") or "created_at"
        if sort_by not in SORT_COLUMNS:
            raise ValidationError(f"sort_by must be one of {', '.join(SORT_COLUMNS)}")
        sort_order = filters.get("sort_order") or "desc"
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order must be 'asc' or 'desc'")

        rows, total = await self.profiles.search(
            page=page,
            limit=limit,
            search=filters.get("search"),
            specialties=filters.get("specialties"),
            min_rating=filters.get("min_rating"),
            is_verified=filters.get("is_verified"),
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return build_page(_profiles(rows), total, page, limit)

    async def get_top(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Verified, rated artisans by rating, review count, follower count."""
        return _profiles(await self.profiles.top(limit))

    async def get_by_specialty(self, specialty: str, limit: int = 10) -> List[Dict[str, Any]]:
        return _profiles(await self.profiles.by_specialty(specialty, limit))

    async def get_featured(self) -> List[Dict[str, Any]]:
        return await self.get_top(FEATURED_COUNT)

    async def get_suggested(self, user_id: str, limit: int = 5) -> List[Dict[str, Any]]:
        """Artisans the user does not follow yet (never the user themself)."""
        exclude = await self.users.get_followed_user_ids(user_id, role=UserRole.ARTISAN)
        exclude.append(user_id)
        return _profiles(await self.profiles.suggested(exclude, limit))

    # --- Lookups ---

    async def get_profile(self, profile_id: str) -> Optional[Dict[str, Any]]:
        profile = await self.profiles.find_by_id(profile_id)
        if profile is None:
            return None
        return artisan_profile_dict(profile, owner=profile.user)

    async def get_profile_by_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        profile = await self.profiles.find_by_user_id(user_id)
        if profile is None:
            return None
        return artisan_profile_dict(profile, owner=profile.user)

    async def get_my_profile(self, user_id: str) -> Dict[str, Any]:
        profile = await self.get_profile_by_user(user_id)
        if profile is None:
            raise ArtisanProfileNotFoundError("You do not have an artisan profile")
        return profile

    # --- Writes ---

    async def update_my_profile(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Owner edit of shop fields, media, contact, social links and template."""
        async with atomic(self.session, "artisan_profiles.update"):
            profile = await self.profiles.find_by_user_id(user_id)
            if profile is None:
                raise ArtisanProfileNotFoundError("You do not have an artisan profile")
            await self.profiles.update(profile, data)

        logger.info("Artisan profile updated", profile_id=profile.id, fields=sorted(data.keys()))
        return artisan_profile_dict(profile, owner=profile.user)

    async def delete_my_profile(self, user_id: str) -> None:
        """
        Close the owner's shop: the profile is removed and the user goes back
        to CUSTOMER in the same transaction.

        The approved upgrade request stays as history and keeps blocking a
        new submission.
        """
        async with atomic(self.session, "artisan_profiles.delete"):
            profile = await self.profiles.find_by_user_id(user_id)
            if profile is None:
                raise ArtisanProfileNotFoundError("You do not have an artisan profile")
            profile_id = profile.id
            await self.profiles.delete(profile)
            await self.users.update_role(user_id, UserRole.CUSTOMER)

        logger.info("Artisan profile deleted", profile_id=profile_id, user_id=user_id)

    async def _set_counters(self, profile_id: str, operation: str, **values) -> Dict[str, Any]:
        async with atomic(self.session, operation):
            if not await self.profiles.set_counters(profile_id, **values):
                raise ArtisanProfileNotFoundError()
            profile = await self.profiles.reload(profile_id)
        return artisan_profile_dict(profile, owner=profile.user)

    async def verify(self, profile_id: str, is_verified: bool) -> Dict[str, Any]:
        """Admin toggle of the verified badge."""
        result = await self._set_counters(profile_id, "artisan_profiles.verify", is_verified=is_verified)
        logger.info("Artisan verification changed", profile_id=profile_id, is_verified=is_verified)
        return result

    async def update_rating(self, profile_id: str, rating: Optional[float], review_count: int) -> Dict[str, Any]:
        """Called by the review module after a review is added or removed."""
        if rating is not None and not 0 <= rating <= 5:
            raise ValidationError("rating must be between 0 and 5")
        if review_count < 0:
            raise ValidationError("review_count must not be negative")
        return await self._set_counters(
            profile_id,
            "artisan_profiles.update_rating",
            rating=rating,
            review_count=review_count,
        )

    async def update_total_sales(self, profile_id: str, total_sales: int) -> Dict[str, Any]:
        """Called by the order module when an order is fulfilled."""
        if total_sales < 0:
            raise ValidationError("total_sales must not be negative")
        return await self._set_counters(
            profile_id,
            "artisan_profiles.update_total_sales",
            total_sales=total_sales,
        )

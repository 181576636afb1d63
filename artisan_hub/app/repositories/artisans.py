# artisan_hub/app/repositories/artisans.py
"""
Artisan profile store and the discovery queries over it.

Profiles are only created from an approved upgrade request. Ratings and sales
are written by the review / order modules through ``update_rating`` and
``update_total_sales``.
"""
from datetime import datetime
from typing import Optional, List, Tuple, Dict, Any, Sequence

from sqlalchemy import select, func, or_, update
from sqlalchemy.exc import IntegrityError

from artisan_hub.app.core.exceptions import ConflictError
from artisan_hub.app.models.artisan import ArtisanProfile, ArtisanProfileSpecialty, ArtisanUpgradeRequest
from artisan_hub.app.models.user import User
from artisan_hub.app.repositories.base import BaseRepository, storage_operation, violates

# Owner-editable fields (PATCH /profile)
EDITABLE_FIELDS = (
    "shop_name",
    "shop_description",
    "shop_logo_url",
    "shop_banner_url",
    "experience",
    "website",
    "contact_email",
    "contact_phone",
    "social_media",
    "template_id",
    "template_data",
)

SORT_COLUMNS = {
    "rating": ArtisanProfile.rating,
    "review_count": ArtisanProfile.review_count,
    "created_at": ArtisanProfile.created_at,
    "follower_count": User.follower_count,
    "total_sales": ArtisanProfile.total_sales,
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _ranking_order():
    """rating desc (unrated last), review count, follower count, id."""
    return (
        ArtisanProfile.rating.desc().nulls_last(),
        ArtisanProfile.review_count.desc(),
        User.follower_count.desc(),
        ArtisanProfile.id,
    )


class ArtisanProfileRepository(BaseRepository):

    def _base_query(self):
        return select(ArtisanProfile).join(User, User.id == ArtisanProfile.user_id)

    @storage_operation("artisan_profiles.find_by_id")
    async def find_by_id(self, profile_id: str) -> Optional[ArtisanProfile]:
        result = await self.session.execute(select(ArtisanProfile).where(ArtisanProfile.id == profile_id))
        return result.scalar_one_or_none()

    @storage_operation("artisan_profiles.find_by_user_id")
    async def find_by_user_id(self, user_id: str) -> Optional[ArtisanProfile]:
        result = await self.session.execute(select(ArtisanProfile).where(ArtisanProfile.user_id == user_id))
        return result.scalar_one_or_none()

    @storage_operation("artisan_profiles.create_from_request")
    async def create_from_request(self, request: ArtisanUpgradeRequest) -> ArtisanProfile:
        """Build the profile from an approved request's shop metadata."""
        profile = ArtisanProfile(
            user=request.user,
            shop_name=request.shop_name,
            shop_description=request.shop_description,
            experience=request.experience,
            website=request.website,
            social_media=dict(request.social_media or {}),
            is_verified=False,
            rating=None,
            review_count=0,
            total_sales=0,
            specialty_rows=[],
        )
        profile.set_specialties(list(request.specialties or []))
        self.session.add(profile)
        try:
            await self.session.flush()
        except IntegrityError as e:
            if not violates(e, "artisan_profiles_user_id_key", "artisan_profiles.user_id"):
                raise
            raise ConflictError("User already has an artisan profile", error_code="ALREADY_ARTISAN")
        return profile

    @storage_operation("artisan_profiles.update")
    async def update(self, profile: ArtisanProfile, data: Dict[str, Any]) -> ArtisanProfile:
        for field, value in data.items():
            if field == "specialties":
                profile.set_specialties(list(value or []))
            elif field in EDITABLE_FIELDS:
                setattr(profile, field, value)
        profile.updated_at = datetime.now()
        await self.session.flush()
        return profile

    @storage_operation("artisan_profiles.delete")
    async def delete(self, profile: ArtisanProfile) -> None:
        """Remove the profile; its specialty rows go with it."""
        await self.session.delete(profile)
        await self.session.flush()

    @storage_operation("artisan_profiles.set_counters")
    async def set_counters(self, profile_id: str, **values) -> bool:
        """Write aggregate columns (verified flag, rating, sales). False if no such profile."""
        result = await self.session.execute(
            update(ArtisanProfile)
            .where(ArtisanProfile.id == profile_id)
            .values(updated_at=datetime.now(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @storage_operation("artisan_profiles.reload")
    async def reload(self, profile_id: str) -> Optional[ArtisanProfile]:
        result = await self.session.execute(
            select(ArtisanProfile)
            .where(ArtisanProfile.id == profile_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @storage_operation("artisan_profiles.search")
    async def search(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        specialties: Optional[Sequence[str]] = None,
        min_rating: Optional[float] = None,
        is_verified: Optional[bool] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[ArtisanProfile], int]:
        """Filtered, sorted page of profiles plus the total match count."""
        conditions = []
        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            conditions.append(or_(
                ArtisanProfile.shop_name.ilike(pattern, escape="\\"),
                ArtisanProfile.shop_description.ilike(pattern, escape="\\"),
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
                User.username.ilike(pattern, escape="\\"),
            ))
        if specialties:
            conditions.append(ArtisanProfile.id.in_(
                select(ArtisanProfileSpecialty.profile_id)
                .where(ArtisanProfileSpecialty.name.in_(list(specialties)))
            ))
        if min_rating is not None:
            conditions.append(ArtisanProfile.rating >= min_rating)
        if is_verified is not None:
            conditions.append(ArtisanProfile.is_verified == is_verified)

        count_query = (
            select(func.count(ArtisanProfile.id))
            .select_from(ArtisanProfile)
            .join(User, User.id == ArtisanProfile.user_id)
            .where(*conditions)
        )
        total = (await self.session.execute(count_query)).scalar() or 0

        column = SORT_COLUMNS.get(sort_by, ArtisanProfile.created_at)
        if sort_order == "asc":
            primary = column.asc().nulls_last()
            secondary = ArtisanProfile.id.asc()
        else:
            primary = column.desc().nulls_last()
            secondary = ArtisanProfile.id.desc()

        query = (
            self._base_query()
            .where(*conditions)
            .order_by(primary, secondary)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    @storage_operation("artisan_profiles.top")
    async def top(self, limit: int) -> List[ArtisanProfile]:
        query = (
            self._base_query()
            .where(ArtisanProfile.is_verified.is_(True), ArtisanProfile.rating.is_not(None))
            .order_by(*_ranking_order())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    @storage_operation("artisan_profiles.by_specialty")
    async def by_specialty(self, specialty: str, limit: int) -> List[ArtisanProfile]:
        query = (
            self._base_query()
            .where(
                ArtisanProfile.is_verified.is_(True),
                ArtisanProfile.id.in_(
                    select(ArtisanProfileSpecialty.profile_id)
                    .where(ArtisanProfileSpecialty.name == specialty)
                ),
            )
            .order_by(
                ArtisanProfile.rating.desc().nulls_last(),
                ArtisanProfile.review_count.desc(),
                ArtisanProfile.id,
            )
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    @storage_operation("artisan_profiles.suggested")
    async def suggested(self, exclude_user_ids: Sequence[str], limit: int) -> List[ArtisanProfile]:
        query = self._base_query()
        if exclude_user_ids:
            query = query.where(ArtisanProfile.user_id.not_in(list(exclude_user_ids)))
        query = query.order_by(*_ranking_order()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

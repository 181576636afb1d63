# artisan_hub/app/repositories/users.py
"""
User identity store. Owned by the auth module; the artisan workflow only
reads public identity, flips the role on approval and reads follow edges.
"""
from typing import Optional, List

from sqlalchemy import select, update

from artisan_hub.app.models.user import User, Follow
from artisan_hub.app.repositories.base import BaseRepository, storage_operation


class UserRepository(BaseRepository):

    @storage_operation("users.find_by_id")
    async def find_by_id(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @storage_operation("users.update_role")
    async def update_role(self, user_id: str, role: str) -> bool:
        """Set the user's role. Returns False if the user does not exist."""
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(role=role)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @storage_operation("users.followed_ids")
    async def get_followed_user_ids(self, user_id: str, role: Optional[str] = None) -> List[str]:
        """Ids of users that user_id follows, optionally only those with the given role."""
        query = select(Follow.following_id).where(Follow.follower_id == user_id)
        if role is not None:
            query = query.join(User, User.id == Follow.following_id).where(User.role == role)
        result = await self.session.execute(query)
        return list(result.scalars().all())

# artisan_hub/app/services/serializers.py
"""
Dict views of ORM rows returned by the services.

Relationships are only read when they were eager-loaded; callers that hold a
freshly created row pass the owner explicitly.
"""
from datetime import datetime
from typing import Optional, Dict, Any

from artisan_hub.app.models.artisan import ArtisanUpgradeRequest, ArtisanProfile
from artisan_hub.app.models.user import User


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_public(user: Optional[User]) -> Optional[Dict[str, Any]]:
    """Public identity of an owner (no role, no counters)."""
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "avatar_url": user.avatar_url,
    }


def upgrade_request_dict(request: ArtisanUpgradeRequest, owner: Optional[User] = None) -> Dict[str, Any]:
    data = {
        "id": request.id,
        "user_id": request.user_id,
        "shop_name": request.shop_name,
        "shop_description": request.shop_description,
        "specialties": list(request.specialties or []),
        "experience": request.experience,
        "website": request.website,
        "social_media": dict(request.social_media or {}),
        "reason": request.reason,
        "images": list(request.images or []),
        "certificates": list(request.certificates or []),
        "identity_proof": request.identity_proof,
        "status": request.status,
        "admin_notes": request.admin_notes,
        "reviewed_by": request.reviewed_by,
        "reviewed_at": _iso(request.reviewed_at),
        "created_at": _iso(request.created_at),
        "updated_at": _iso(request.updated_at),
    }
    if owner is not None:
        data["user"] = user_public(owner)
    return data


def artisan_profile_dict(profile: ArtisanProfile, owner: Optional[User] = None) -> Dict[str, Any]:
    data = {
        "id": profile.id,
        "user_id": profile.user_id,
        "shop_name": profile.shop_name,
        "shop_description": profile.shop_description,
        "shop_logo_url": profile.shop_logo_url,
        "shop_banner_url": profile.shop_banner_url,
        "specialties": profile.specialties,
        "experience": profile.experience,
        "website": profile.website,
        "contact_email": profile.contact_email,
        "contact_phone": profile.contact_phone,
        "social_media": dict(profile.social_media or {}),
        "template_id": profile.template_id,
        "template_data": profile.template_data,
        "is_verified": bool(profile.is_verified),
        "rating": profile.rating,
        "review_count": profile.review_count or 0,
        "total_sales": profile.total_sales or 0,
        "created_at": _iso(profile.created_at),
        "updated_at": _iso(profile.updated_at),
    }
    if owner is not None:
        data["user"] = user_public(owner)
        data["follower_count"] = owner.follower_count or 0
    return data

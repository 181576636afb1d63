# artisan_hub/app/services/__init__.py
"""
Services layer for business logic.
Keeps API endpoints thin and business logic testable and reusable.
"""

from artisan_hub.app.services.upgrade_requests import (
    UpgradeRequestService,
    UpgradeRequestNotFoundError,
    UpgradeRequestExistsError,
    AlreadyArtisanError,
    UserNotFoundError,
)
from artisan_hub.app.services.artisans import (
    ArtisanProfileService,
    ArtisanProfileNotFoundError,
    FEATURED_COUNT,
)

__all__ = [
    # Upgrade workflow
    "UpgradeRequestService",
    "UpgradeRequestNotFoundError",
    "UpgradeRequestExistsError",
    "AlreadyArtisanError",
    "UserNotFoundError",
    # Artisan profiles
    "ArtisanProfileService",
    "ArtisanProfileNotFoundError",
    "FEATURED_COUNT",
]

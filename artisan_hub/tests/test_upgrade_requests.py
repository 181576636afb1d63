"""
Unit tests for the upgrade workflow.

Tests cover:
- submit / resubmit rules and the one-pending-request invariant
- amend (own pending request, by id, ownership and state checks)
- get_status contract
- approve atomicity, including a failure injected while creating the profile
- reject notes requirement and terminal-state protection
- list_requests ordering and page metadata
"""
import pytest
from datetime import datetime, timedelta
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from artisan_hub.app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StorageFailure,
    ValidationError,
)
from artisan_hub.app.models.artisan import ArtisanProfile, ArtisanUpgradeRequest, UpgradeRequestStatus
from artisan_hub.app.models.user import User, UserRole
from artisan_hub.app.repositories.artisans import ArtisanProfileRepository
from artisan_hub.app.repositories.upgrade_requests import UpgradeRequestRepository
from artisan_hub.app.services.upgrade_requests import UpgradeRequestService


SUBMISSION = {
    "shop_name": "Clay Works",
    "shop_description": "Hand thrown stoneware",
    "specialties": ["pottery"],
    "experience": 3,
    "website": "https://clay.example.com",
    "social_media": {"instagram": "https://instagram.com/clayworks"},
    "reason": "I want to sell my pottery",
    "images": ["https://img.example.com/1.jpg"],
    "certificates": [],
    "identity_proof": None,
}


async def _pending_count(session_factory, user_id: str) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count(ArtisanUpgradeRequest.id)).where(
                ArtisanUpgradeRequest.user_id == user_id,
                ArtisanUpgradeRequest.status == UpgradeRequestStatus.PENDING,
            )
        )
        return result.scalar()


# ============================================
# SUBMIT
# ============================================

@pytest.mark.asyncio
async def test_submit_creates_pending_request(test_session: AsyncSession, test_user: User, session_factory):
    service = UpgradeRequestService(test_session)
    data = await service.submit(test_user.id, dict(SUBMISSION))

    assert data["status"] == UpgradeRequestStatus.PENDING
    assert data["shop_name"] == "Clay Works"
    assert data["specialties"] == ["pottery"]
    assert data["user_id"] == test_user.id
    assert data["user"]["username"] == "customer"
    assert data["reviewed_by"] is None
    assert await _pending_count(session_factory, test_user.id) == 1


@pytest.mark.asyncio
async def test_submit_unknown_user(test_session: AsyncSession):
    service = UpgradeRequestService(test_session)
    with pytest.raises(NotFoundError) as exc:
        await service.submit("missing-user", dict(SUBMISSION))
    assert exc.value.error_code == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_submit_twice_while_pending_conflicts(test_session: AsyncSession, test_user: User, session_factory):
    # Rollback expires loaded objects, so keep plain ids
    user_id = test_user.id
    service = UpgradeRequestService(test_session)
    await service.submit(user_id, dict(SUBMISSION))

    with pytest.raises(ConflictError) as exc:
        await service.submit(user_id, dict(SUBMISSION, shop_name="Other Shop"))
    assert exc.value.error_code == "UPGRADE_REQUEST_EXISTS"
    assert await _pending_count(session_factory, user_id) == 1


@pytest.mark.asyncio
async def test_submit_by_artisan_conflicts(test_session: AsyncSession, make_user):
    artisan = await make_user(role=UserRole.ARTISAN)
    service = UpgradeRequestService(test_session)
    with pytest.raises(ConflictError) as exc:
        await service.submit(artisan.id, dict(SUBMISSION))
    assert exc.value.error_code == "ALREADY_ARTISAN"


@pytest.mark.asyncio
async def test_submit_after_approval_conflicts(test_session: AsyncSession, test_user: User, make_request):
    await make_request(test_user, status=UpgradeRequestStatus.APPROVED)
    service = UpgradeRequestService(test_session)
    with pytest.raises(ConflictError) as exc:
        await service.submit(test_user.id, dict(SUBMISSION))
    assert exc.value.error_code == "UPGRADE_REQUEST_EXISTS"


@pytest.mark.asyncio
async def test_resubmit_after_rejection_creates_new_request(
    test_session: AsyncSession, test_user: User, test_admin: User, session_factory
):
    service = UpgradeRequestService(test_session)
    first = await service.submit(test_user.id, dict(SUBMISSION))
    await service.reject(first["id"], test_admin.id, "Please add photos")

    second = await service.submit(test_user.id, dict(SUBMISSION, shop_name="Clay Works Studio"))

    assert second["id"] != first["id"]
    assert second["status"] == UpgradeRequestStatus.PENDING
    # The rejected request is kept as history
    old = await UpgradeRequestRepository(test_session).find_by_id(first["id"], refresh=True)
    assert old.status == UpgradeRequestStatus.REJECTED
    assert old.admin_notes == "Please add photos"
    assert await _pending_count(session_factory, test_user.id) == 1


@pytest.mark.asyncio
async def test_store_rejects_second_pending_row(
    test_session: AsyncSession, test_user: User, make_request, session_factory
):
    """The partial unique index holds even if the service check is bypassed."""
    user_id = test_user.id
    await make_request(test_user)
    repo = UpgradeRequestRepository(test_session)
    with pytest.raises(ConflictError):
        await repo.create(test_user, dict(SUBMISSION))
    await test_session.rollback()
    assert await _pending_count(session_factory, user_id) == 1


@pytest.mark.asyncio
async def test_store_other_integrity_errors_are_storage_failures(
    test_session: AsyncSession, test_user: User, session_factory
):
    """Only the one-pending-per-user index maps to UPGRADE_REQUEST_EXISTS."""
    user_id = test_user.id
    repo = UpgradeRequestRepository(test_session)
    with pytest.raises(StorageFailure):
        await repo.create(test_user, {**SUBMISSION, "shop_name": None})
    await test_session.rollback()
    assert await _pending_count(session_factory, user_id) == 0


# ============================================
# AMEND
# ============================================

@pytest.mark.asyncio
async def test_amend_own_pending_request(test_session: AsyncSession, test_user: User):
    service = UpgradeRequestService(test_session)
    submitted = await service.submit(test_user.id, dict(SUBMISSION))

    data = await service.amend(test_user.id, {"experience": 5})

    assert data["id"] == submitted["id"]
    assert data["experience"] == 5
    assert data["shop_name"] == "Clay Works"
    assert data["status"] == UpgradeRequestStatus.PENDING


@pytest.mark.asyncio
async def test_amend_without_pending_request(test_session: AsyncSession, test_user: User):
    service = UpgradeRequestService(test_session)
    with pytest.raises(NotFoundError) as exc:
        await service.amend(test_user.id, {"experience": 5})
    assert exc.value.error_code == "UPGRADE_REQUEST_NOT_FOUND"


@pytest.mark.asyncio
async def test_amend_by_id_checks_owner(test_session: AsyncSession, test_user: User, make_user, make_request):
    other = await make_user()
    request = await make_request(other)
    service = UpgradeRequestService(test_session)
    with pytest.raises(ForbiddenError):
        await service.amend(test_user.id, {"experience": 5}, request_id=request.id)


@pytest.mark.asyncio
async def test_amend_by_id_requires_pending(test_session: AsyncSession, test_user: User, make_request):
    request = await make_request(test_user, status=UpgradeRequestStatus.REJECTED)
    service = UpgradeRequestService(test_session)
    with pytest.raises(InvalidStateError):
        await service.amend(test_user.id, {"experience": 5}, request_id=request.id)


@pytest.mark.asyncio
async def test_amend_unknown_id(test_session: AsyncSession, test_user: User):
    service = UpgradeRequestService(test_session)
    with pytest.raises(NotFoundError):
        await service.amend(test_user.id, {"experience": 5}, request_id="missing")


# ============================================
# STATUS
# ============================================

@pytest.mark.asyncio
async def test_status_without_request(test_session: AsyncSession, test_user: User):
    service = UpgradeRequestService(test_session)
    assert await service.get_status(test_user.id) == {"has_request": False}


@pytest.mark.asyncio
async def test_status_returns_latest_request(test_session: AsyncSession, test_user: User, make_request):
    now = datetime.now()
    await make_request(test_user, shop_name="First", status=UpgradeRequestStatus.REJECTED,
                       created_at=now - timedelta(days=2))
    latest = await make_request(test_user, shop_name="Second", created_at=now)

    data = await UpgradeRequestService(test_session).get_status(test_user.id)

    assert data["has_request"] is True
    assert data["id"] == latest.id
    assert data["shop_name"] == "Second"


# ============================================
# APPROVE
# ============================================

@pytest.mark.asyncio
async def test_scenario_submit_amend_approve(test_session: AsyncSession, test_user: User, session_factory):
    service = UpgradeRequestService(test_session)
    submitted = await service.submit(test_user.id, {"shop_name": "Clay Works", "specialties": ["pottery"]})
    await service.amend(test_user.id, {"experience": 5})

    result = await service.approve(submitted["id"], "A1")

    request = result["request"]
    profile = result["profile"]
    assert request["status"] == UpgradeRequestStatus.APPROVED
    assert request["reviewed_by"] == "A1"
    assert request["reviewed_at"] is not None
    assert profile["shop_name"] == "Clay Works"
    assert profile["specialties"] == ["pottery"]
    assert profile["experience"] == 5
    assert profile["is_verified"] is False
    assert profile["total_sales"] == 0
    assert profile["user_id"] == test_user.id

    async with session_factory() as session:
        user = await session.get(User, test_user.id)
        assert user.role == UserRole.ARTISAN


@pytest.mark.asyncio
async def test_approve_rolls_back_when_profile_creation_fails(
    test_session: AsyncSession, test_user: User, test_admin: User, monkeypatch, session_factory
):
    user_id, admin_id = test_user.id, test_admin.id
    service = UpgradeRequestService(test_session)
    submitted = await service.submit(user_id, dict(SUBMISSION))

    async def failing_create(self, request):
        raise SQLAlchemyError("simulated write failure")

    monkeypatch.setattr(ArtisanProfileRepository, "create_from_request", failing_create)

    with pytest.raises(StorageFailure):
        await service.approve(submitted["id"], admin_id, "looks good")

    async with session_factory() as session:
        request = await session.get(ArtisanUpgradeRequest, submitted["id"])
        assert request.status == UpgradeRequestStatus.PENDING
        assert request.reviewed_by is None
        assert request.admin_notes is None
        user = await session.get(User, user_id)
        assert user.role == UserRole.CUSTOMER
        profiles = await session.execute(select(func.count(ArtisanProfile.id)))
        assert profiles.scalar() == 0


@pytest.mark.asyncio
async def test_approve_unknown_request(test_session: AsyncSession, test_admin: User):
    service = UpgradeRequestService(test_session)
    with pytest.raises(NotFoundError) as exc:
        await service.approve("missing", test_admin.id)
    assert exc.value.error_code == "UPGRADE_REQUEST_NOT_FOUND"


@pytest.mark.asyncio
async def test_approve_twice_is_invalid_state(
    test_session: AsyncSession, test_user: User, test_admin: User, session_factory
):
    user_id, admin_id = test_user.id, test_admin.id
    service = UpgradeRequestService(test_session)
    submitted = await service.submit(user_id, dict(SUBMISSION))
    await service.approve(submitted["id"], admin_id, "welcome")

    with pytest.raises(InvalidStateError):
        await service.approve(submitted["id"], "another-admin", "again")
    with pytest.raises(InvalidStateError):
        await service.reject(submitted["id"], "another-admin", "changed my mind")

    async with session_factory() as session:
        request = await session.get(ArtisanUpgradeRequest, submitted["id"])
        assert request.status == UpgradeRequestStatus.APPROVED
        assert request.admin_notes == "welcome"
        assert request.reviewed_by == admin_id
        profiles = await session.execute(select(func.count(ArtisanProfile.id)))
        assert profiles.scalar() == 1


@pytest.mark.asyncio
async def test_transition_only_matches_pending_rows(test_session: AsyncSession, test_user: User, make_request):
    """A reviewer that lost the race sees zero affected rows."""
    request = await make_request(test_user, status=UpgradeRequestStatus.REJECTED)
    repo = UpgradeRequestRepository(test_session)
    assert await repo.transition(request.id, UpgradeRequestStatus.APPROVED, "A1", None) is False
    await test_session.rollback()


# ============================================
# REJECT
# ============================================

@pytest.mark.asyncio
@pytest.mark.parametrize("notes", [None, "", "   "])
async def test_reject_requires_notes(test_session: AsyncSession, test_user: User, test_admin: User, notes):
    service = UpgradeRequestService(test_session)
    submitted = await service.submit(test_user.id, dict(SUBMISSION))
    with pytest.raises(ValidationError):
        await service.reject(submitted["id"], test_admin.id, notes)

    status = await service.get_status(test_user.id)
    assert status["status"] == UpgradeRequestStatus.PENDING


@pytest.mark.asyncio
async def test_reject_persists_notes(
    test_session: AsyncSession, test_user: User, test_admin: User, session_factory
):
    service = UpgradeRequestService(test_session)
    submitted = await service.submit(test_user.id, dict(SUBMISSION))

    data = await service.reject(submitted["id"], test_admin.id, "insufficient experience")

    assert data["status"] == UpgradeRequestStatus.REJECTED
    assert data["admin_notes"] == "insufficient experience"
    assert data["reviewed_by"] == test_admin.id
    async with session_factory() as session:
        user = await session.get(User, test_user.id)
        assert user.role == UserRole.CUSTOMER


# ============================================
# LIST
# ============================================

@pytest.mark.asyncio
async def test_list_requests_newest_first_with_owner(
    test_session: AsyncSession, make_user, make_request
):
    now = datetime.now()
    users = [await make_user() for _ in range(3)]
    oldest = await make_request(users[0], created_at=now - timedelta(hours=3))
    newest = await make_request(users[1], created_at=now)
    await make_request(users[2], status=UpgradeRequestStatus.REJECTED, created_at=now - timedelta(hours=1))

    page = await UpgradeRequestService(test_session).list_requests(page=1, limit=2)

    assert [r["id"] for r in page["data"]][0] == newest.id
    assert page["data"][0]["user"]["username"] == users[1].username
    assert page["meta"] == {"total": 3, "page": 1, "limit": 2, "total_pages": 2}

    pending = await UpgradeRequestService(test_session).list_requests(
        status=UpgradeRequestStatus.PENDING, page=1, limit=10
    )
    assert [r["id"] for r in pending["data"]] == [newest.id, oldest.id]
    assert pending["meta"]["total"] == 2


@pytest.mark.asyncio
async def test_list_requests_ties_broken_by_id(test_session: AsyncSession, make_user, make_request):
    created = datetime(2026, 1, 1, 12, 0, 0)
    requests = [await make_request(await make_user(), created_at=created) for _ in range(4)]

    service = UpgradeRequestService(test_session)
    first = await service.list_requests(page=1, limit=2)
    second = await service.list_requests(page=2, limit=2)

    ids = [r["id"] for r in first["data"]] + [r["id"] for r in second["data"]]
    assert ids == sorted((r.id for r in requests), reverse=True)


@pytest.mark.asyncio
async def test_list_requests_empty(test_session: AsyncSession):
    page = await UpgradeRequestService(test_session).list_requests()
    assert page["data"] == []
    assert page["meta"]["total"] == 0
    assert page["meta"]["total_pages"] == 0

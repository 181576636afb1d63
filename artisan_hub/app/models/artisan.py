from sqlalchemy import String, ForeignKey, Text, Boolean, Integer, DateTime, Float, Index, JSON, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional, List
from artisan_hub.app.core.base import Base, new_id
from artisan_hub.app.models.user import User


class UpgradeRequestStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    ALL = (PENDING, APPROVED, REJECTED)


class ArtisanUpgradeRequest(Base):
    __tablename__ = 'artisan_upgrade_requests'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'))
    shop_name: Mapped[str] = mapped_column(String(100))
    shop_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    specialties: Mapped[List[str]] = mapped_column(JSON(), default=list)
    experience: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # years
    website: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    social_media: Mapped[dict] = mapped_column(JSON(), default=dict)  # {"instagram": "https://..."}
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Supporting evidence, all URLs
    images: Mapped[List[str]] = mapped_column(JSON(), default=list)
    certificates: Mapped[List[str]] = mapped_column(JSON(), default=list)
    identity_proof: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=UpgradeRequestStatus.PENDING)
    # Admin review
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    user: Mapped[User] = relationship(lazy="selectin")

    __table_args__ = (
        Index('ix_artisan_upgrade_requests_status_created', 'status', 'created_at'),
        Index('ix_artisan_upgrade_requests_user_id', 'user_id'),
        # At most one PENDING request per user
        Index(
            'uq_artisan_upgrade_requests_pending_user',
            'user_id',
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )


class ArtisanProfileSpecialty(Base):
    """One row per specialty so overlap / containment filters stay plain SQL."""
    __tablename__ = 'artisan_profile_specialties'

    profile_id: Mapped[str] = mapped_column(ForeignKey('artisan_profiles.id', ondelete='CASCADE'), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        Index('ix_artisan_profile_specialties_name', 'name'),
    )


class ArtisanProfile(Base):
    __tablename__ = 'artisan_profiles'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), unique=True)
    shop_name: Mapped[str] = mapped_column(String(100))
    shop_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    shop_logo_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    shop_banner_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    experience: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    social_media: Mapped[dict] = mapped_column(JSON(), default=dict)
    # Presentation template chosen by the artisan
    template_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    template_data: Mapped[Optional[dict]] = mapped_column(JSON(), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    # Aggregates fed by the review and order modules
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    review_count: Mapped[int] = mapped_column(Integer, default=0)
    total_sales: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    user: Mapped[User] = relationship(lazy="selectin")
    specialty_rows: Mapped[List[ArtisanProfileSpecialty]] = relationship(
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by=ArtisanProfileSpecialty.position,
    )

    __table_args__ = (
        Index('ix_artisan_profiles_is_verified', 'is_verified'),
        Index('ix_artisan_profiles_rating', 'rating'),
        Index('ix_artisan_profiles_created_at', 'created_at'),
    )

    @property
    def specialties(self) -> List[str]:
        return [row.name for row in self.specialty_rows]

    def set_specialties(self, names: List[str]) -> None:
        """Replace the specialty set, keeping rows that survive so no key is re-inserted."""
        wanted = list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
        existing = {row.name: row for row in self.specialty_rows}
        rows = []
        for position, name in enumerate(wanted):
            row = existing.get(name) or ArtisanProfileSpecialty(name=name)
            row.position = position
            rows.append(row)
        self.specialty_rows = rows

from pydantic import BaseModel, ConfigDict, Field, model_validator, field_validator
from typing import Optional, List, Dict, Any
import re

from artisan_hub.app.core.sanitize import sanitize_user_input, check_http_url

MAX_SPECIALTIES = 5
MAX_SPECIALTY_LENGTH = 50
MAX_EVIDENCE_URLS = 10
MAX_TEXT_LENGTH = 1000

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _clean_specialties(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return None
    cleaned = []
    for item in v:
        item = (sanitize_user_input(item) or "").strip()
        if not item:
            raise ValueError("specialties must not contain empty values")
        if len(item) > MAX_SPECIALTY_LENGTH:
            raise ValueError(f"each specialty must be at most {MAX_SPECIALTY_LENGTH} characters")
        if item not in cleaned:
            cleaned.append(item)
    return cleaned


def _check_social_media(v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    if v is None:
        return None
    for name, url in v.items():
        check_http_url(url, f"social_media.{name}")
    return v


# --- Upgrade requests ---

class UpgradeRequestCreate(BaseModel):
    """Body of POST /upgrade-request"""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    shop_name: str = Field(min_length=3, max_length=100)
    shop_description: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    specialties: List[str] = Field(default_factory=list, max_length=MAX_SPECIALTIES)
    experience: Optional[int] = Field(default=None, ge=0, le=100)  # years
    website: Optional[str] = None
    social_media: Dict[str, str] = Field(default_factory=dict)
    reason: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    images: List[str] = Field(default_factory=list, max_length=MAX_EVIDENCE_URLS)
    certificates: List[str] = Field(default_factory=list, max_length=MAX_EVIDENCE_URLS)
    identity_proof: Optional[str] = None

    @field_validator("shop_name", "shop_description", "reason")
    @classmethod
    def sanitize_text_fields(cls, v: Optional[str]) -> Optional[str]:
        """Sanitize user input to prevent XSS."""
        return sanitize_user_input(v)

    @field_validator("specialties")
    @classmethod
    def validate_specialties(cls, v):
        return _clean_specialties(v)

    @field_validator("website", "identity_proof")
    @classmethod
    def validate_urls(cls, v, info):
        return check_http_url(v, info.field_name)

    @field_validator("images", "certificates")
    @classmethod
    def validate_url_lists(cls, v, info):
        if v is None:
            return None
        return [check_http_url(url, info.field_name) for url in v]

    @field_validator("social_media")
    @classmethod
    def validate_social_media(cls, v):
        return _check_social_media(v)


class UpgradeRequestUpdate(UpgradeRequestCreate):
    """Body of PATCH /upgrade-request - all fields optional, at least one required"""
    shop_name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    specialties: Optional[List[str]] = Field(default=None, max_length=MAX_SPECIALTIES)
    social_media: Optional[Dict[str, str]] = None
    images: Optional[List[str]] = Field(default=None, max_length=MAX_EVIDENCE_URLS)
    certificates: Optional[List[str]] = Field(default=None, max_length=MAX_EVIDENCE_URLS)

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        if "shop_name" in self.model_fields_set and self.shop_name is None:
            raise ValueError("shop_name cannot be null")
        return self


class ApproveBody(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    admin_notes: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)


class RejectBody(BaseModel):
    """Rejection must say why."""
    model_config = ConfigDict(str_strip_whitespace=True)

    admin_notes: str = Field(min_length=1, max_length=MAX_TEXT_LENGTH)


# --- Artisan profiles ---

class ArtisanProfileUpdate(BaseModel):
    """Owner edit of PATCH /profile - all fields optional"""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    shop_name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    shop_description: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    shop_logo_url: Optional[str] = None
    shop_banner_url: Optional[str] = None
    specialties: Optional[List[str]] = Field(default=None, max_length=MAX_SPECIALTIES)
    experience: Optional[int] = Field(default=None, ge=0, le=100)
    website: Optional[str] = None
    contact_email: Optional[str] = Field(default=None, max_length=255)
    contact_phone: Optional[str] = Field(default=None, max_length=32)
    social_media: Optional[Dict[str, str]] = None
    template_id: Optional[str] = Field(default=None, max_length=100)
    template_data: Optional[Dict[str, Any]] = None

    @field_validator("shop_name", "shop_description")
    @classmethod
    def sanitize_text_fields(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_user_input(v)

    @field_validator("specialties")
    @classmethod
    def validate_specialties(cls, v):
        return _clean_specialties(v)

    @field_validator("shop_logo_url", "shop_banner_url", "website")
    @classmethod
    def validate_urls(cls, v, info):
        return check_http_url(v, info.field_name)

    @field_validator("contact_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not EMAIL_RE.match(v):
            raise ValueError("contact_email must be a valid email address")
        return v

    @field_validator("social_media")
    @classmethod
    def validate_social_media(cls, v):
        return _check_social_media(v)

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        if "shop_name" in self.model_fields_set and self.shop_name is None:
            raise ValueError("shop_name cannot be null")
        return self


class VerifyBody(BaseModel):
    is_verified: bool

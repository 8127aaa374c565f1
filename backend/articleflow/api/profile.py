"""Profile and user settings endpoints. Records are upserted per caller."""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..core.config import settings
from ..database import get_db
from ..models import UserSettings
from ..repositories import ProfileRepository
from ..schemas.profile import (
    AvatarResponse,
    AvatarUploadRequest,
    ProfileResponse,
    ProfileUpdate,
    SettingsResponse,
    SettingsUpdate,
)
from ..services.image_data import check_avatar, decode_image_data
from ..services.object_storage import R2Storage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["profile"])


def _settings_response(user_settings: UserSettings) -> SettingsResponse:
    return SettingsResponse(
        devto_configured=bool(user_settings.devto_api_key),
        default_word_count=user_settings.default_word_count,
        article_template=user_settings.article_template,
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    profile = ProfileRepository(db).get_or_create_profile(auth.user_id, auth.email)
    db.commit()
    return profile


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    update: ProfileUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    profile = ProfileRepository(db).get_or_create_profile(auth.user_id, auth.email)
    for name, value in update.model_dump(exclude_unset=True).items():
        setattr(profile, name, value)
    db.commit()
    db.refresh(profile)
    return profile


@router.get("/settings", response_model=SettingsResponse)
def get_settings(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    user_settings = ProfileRepository(db).get_or_create_settings(auth.user_id)
    db.commit()
    return _settings_response(user_settings)


@router.put("/settings", response_model=SettingsResponse)
def update_settings(
    update: SettingsUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Partial update. An empty ``devto_api_key`` removes the stored key."""
    user_settings = ProfileRepository(db).get_or_create_settings(auth.user_id)
    fields = update.model_dump(exclude_unset=True)

    if "devto_api_key" in fields:
        user_settings.devto_api_key = fields["devto_api_key"] or None
    if fields.get("default_word_count") is not None:
        user_settings.default_word_count = fields["default_word_count"]
    if "article_template" in fields:
        user_settings.article_template = fields["article_template"] or None

    db.commit()
    db.refresh(user_settings)
    return _settings_response(user_settings)


@router.post("/profile/avatar", response_model=AvatarResponse)
def upload_avatar(
    request: AvatarUploadRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    storage: R2Storage = Depends(get_storage),
):
    """Store a JPEG, PNG, WebP or GIF image (5MB max) and point the profile at it."""
    data, data_url_type = decode_image_data(request.image_data)
    content_type = check_avatar(
        data,
        (request.content_type or data_url_type or "").lower() or None,
        settings.avatar_max_bytes,
    )

    stored = storage.upload(data, content_type, folder=f"avatars/{auth.user_id}")
    profile = ProfileRepository(db).get_or_create_profile(auth.user_id, auth.email)
    profile.avatar_url = stored.url
    db.commit()
    logger.info("Uploaded avatar", extra={"key": stored.key, "bytes": len(data)})
    return AvatarResponse(avatar_url=stored.url)


@router.delete("/profile/avatar", status_code=204)
def delete_avatar(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Clear the avatar URL. The stored image is left in the bucket."""
    profile = ProfileRepository(db).get_profile(auth.user_id)
    if profile is not None and profile.avatar_url:
        profile.avatar_url = None
        db.commit()
    return Response(status_code=204)

"""
Router for profile endpoints.

Handles:
- Public profile pages with the owner's references
- Creating and updating the caller's own profile
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user
from ..database import get_db
from ..models import ProfileResponse, ProfileUpdateRequest, PublicProfileResponse, ReferenceResponse
from ..models_db import Profile, Reference

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Get the caller's own profile."""
    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )
    return ProfileResponse.model_validate(profile)


@router.post("/me", response_model=ProfileResponse)
async def create_my_profile(
    request: ProfileUpdateRequest,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """
    Create the caller's profile on signup.

    Idempotent: an existing profile is returned unchanged with 200.
    """
    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    if profile:
        return ProfileResponse.model_validate(profile)

    profile = Profile(user_id=user.id, **request.model_dump())
    db.add(profile)
    db.commit()
    db.refresh(profile)

    logger.info("Created profile for user %s", user.id)
    response.status_code = status.HTTP_201_CREATED
    return ProfileResponse.model_validate(profile)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    request: ProfileUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Update the caller's profile. Only fields present in the body change."""
    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )

    for key, value in request.model_dump(exclude_unset=True).items():
        setattr(profile, key, value)
    db.commit()
    db.refresh(profile)

    logger.info("Updated profile for user %s", user.id)
    return ProfileResponse.model_validate(profile)


@router.get("/{user_id}", response_model=PublicProfileResponse)
async def get_public_profile(
    user_id: str,
    db: Session = Depends(get_db),
) -> PublicProfileResponse:
    """Get a user's public profile and the references they added, newest first."""
    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid user ID format",
        )

    profile = db.query(Profile).filter(Profile.user_id == user_uuid).first()
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Profile for user {user_id} not found",
        )

    references = (
        db.query(Reference)
        .filter(Reference.user_id == user_uuid)
        .order_by(Reference.created_at.desc())
        .all()
    )

    return PublicProfileResponse(
        profile=ProfileResponse.model_validate(profile),
        references=[ReferenceResponse.model_validate(r) for r in references],
    )

"""
Profile routes
"""
from fastapi import APIRouter, Depends

from secondhand.api.deps import get_current_user, get_profile_service
from secondhand.schemas.user import ProfileResponse, ProfileUpdate, UserStatsResponse
from secondhand.services.identity import AuthenticatedUser
from secondhand.services.profile_service import ProfileService

router = APIRouter(tags=["profile"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    return ProfileResponse(profile=await profiles.get_profile(user.id))


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    payload: ProfileUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    fields = payload.model_dump(exclude_unset=True, exclude={"username"})
    profile = await profiles.update_profile(user.id, payload.username, **fields)
    return ProfileResponse(profile=profile)


@router.get("/user-stats", response_model=UserStatsResponse)
async def user_stats(
    user: AuthenticatedUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Counts shown on the user dashboard"""
    return {"stats": await profiles.stats(user.id)}

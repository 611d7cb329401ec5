"""
Signup route

Sign-in happens directly against the identity provider; the marketplace
only creates the account and its profile document.
"""
from fastapi import APIRouter, Depends, Request

from secondhand.api.deps import get_profile_service, require_client_key
from secondhand.core.rate_limit import get_auth_limit
from secondhand.schemas.user import SignupRequest, SignupResponse
from secondhand.services.profile_service import ProfileService

router = APIRouter(tags=["auth"])


@router.post("/signup", response_model=SignupResponse, dependencies=[Depends(require_client_key)])
@get_auth_limit()
async def signup(
    request: Request,
    payload: SignupRequest,
    profiles: ProfileService = Depends(get_profile_service),
):
    """Create a confirmed account and its profile. Demo usernames get sample listings."""
    user = await profiles.signup(payload.email, payload.password, payload.username)
    return SignupResponse(user=user)

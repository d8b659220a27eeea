from fastapi import APIRouter, Depends

from models.user import ProfileOut, UserProfile
from services.auth import get_current_user

router = APIRouter(tags=["user"])


@router.get("/me", response_model=ProfileOut, summary="Current user's profile")
def me(user: UserProfile = Depends(get_current_user)):
    # coins, warning count and verification flags as stored on the user row
    return ProfileOut(**user.model_dump())

from fastapi import APIRouter, Depends

from rendezvous.auth.dependencies import get_current_profile
from rendezvous.models.user import Profile

router = APIRouter(tags=['auth'])


@router.get("/me")
def me(current_user: Profile = Depends(get_current_profile)):
    return {
        "id": current_user.id,
        "email": current_user.email,
        "full_name": current_user.full_name,
        "role": current_user.role,
    }

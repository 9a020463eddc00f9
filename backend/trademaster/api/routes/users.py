"""Current-user routes"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trademaster.api.deps import get_auth_service, get_current_user
from trademaster.core.database import get_db
from trademaster.models.user import User
from trademaster.schemas.response import MessageResponse
from trademaster.schemas.user import ChangePasswordRequest, UserEnvelope, UserResponse
from trademaster.services.auth_service import AuthService

router = APIRouter()


@router.get("/me", response_model=UserEnvelope)
def get_me(current_user: User = Depends(get_current_user)):
    return UserEnvelope(data=UserResponse.model_validate(current_user), message="User retrieved successfully")


@router.patch("/me/password", response_model=MessageResponse)
def change_password(
    req: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Change password; outstanding reset links stop working"""
    auth.change_password(db, current_user, req.current_password, req.new_password)
    return MessageResponse(message="Password changed successfully")


@router.delete("/me", response_model=MessageResponse)
def delete_me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Soft-delete the account; its tokens stop verifying"""
    auth.delete_account(db, current_user)
    return MessageResponse(message="User deleted successfully")

"""
Password Management Router
==========================
Password change for logged-in users.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from datetime import datetime, timezone
import logging

from dependencies import get_db, get_current_user
from models import User
from schemas import ChangePasswordRequest, PasswordChangeResponse
from auth import verify_password, hash_password

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication & Password"]
)


# ============================================================================
# CHANGE PASSWORD (Logged-in user)
# ============================================================================

@router.post(
    "/change-password",
    response_model=PasswordChangeResponse,
    summary="Change password for logged-in user",
)
def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Change password for currently logged-in user.

    The current password must be correct and the new password must match
    its confirmation. Tokens already issued stay valid until they expire.
    """
    if data.new_password != data.confirm_password:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "New password and confirmation do not match",
                "error_code": "PASSWORD_MISMATCH"
            }
        )

    if not verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Current password is incorrect",
                "error_code": "WRONG_PASSWORD"
            }
        )

    current_user.hashed_password = hash_password(data.new_password)
    current_user.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
    db.commit()

    logger.info(f"Password changed for user {current_user.username}")
    return PasswordChangeResponse(
        success=True,
        message="Password changed successfully",
        changed_at=current_user.updated_at
    )

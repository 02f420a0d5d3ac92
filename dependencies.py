from fastapi.security import OAuth2PasswordBearer
from fastapi import Depends, HTTPException, status, APIRouter
from sqlalchemy.orm import Session, joinedload
from db import get_db
from models import User, TokenBlacklist
from auth import decode_access_token
from schemas import UserOut
from services.access_policy import Actor, Role
from services.timezone_utils import local_now
from datetime import datetime, timezone
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# In-memory cache for blacklisted tokens
# Dictionary: {jti: expiry_datetime}
blacklist_cache = {}
CACHE_MAX_SIZE = 10000  # Maximum tokens to cache in memory

def _cleanup_expired_cache():
    """Remove expired tokens from memory cache"""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    expired_keys = [
        jti for jti, exp_time in blacklist_cache.items()
        if exp_time < now
    ]
    for key in expired_keys:
        del blacklist_cache[key]

    if expired_keys:
        logger.debug(f"Cache cleanup: Removed {len(expired_keys)} expired tokens")

def is_token_blacklisted_cached(jti: str, db: Session) -> bool:
    """
    Check if token is blacklisted, memory cache first, then the database.

    Args:
        jti: JWT ID from token
        db: Database session

    Returns:
        True if token is blacklisted, False otherwise
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    if jti in blacklist_cache:
        if blacklist_cache[jti] > now:
            logger.debug(f"Cache HIT: Token {jti[:8]}... is blacklisted")
            return True
        del blacklist_cache[jti]
        return False

    blacklisted = db.query(TokenBlacklist).filter(
        TokenBlacklist.jti == jti
    ).first()

    if blacklisted:
        blacklist_cache[jti] = blacklisted.token_exp
        if len(blacklist_cache) > CACHE_MAX_SIZE:
            _cleanup_expired_cache()
        return True

    return False

def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    """
    Validate JWT token and return current user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except HTTPException as e:
        logger.info(f"Rejected token: {e.detail}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    username: str = payload.get("sub")
    role: str = payload.get("role")
    jti: str = payload.get("jti")

    if username is None or role is None:
        logger.warning("Invalid token payload: missing sub or role")
        raise credentials_exception

    if jti and is_token_blacklisted_cached(jti, db):
        logger.warning(f"User {username} attempted access with blacklisted token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked. Please login again.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).options(
        joinedload(User.department)
    ).filter(User.username == username).first()

    if user is None:
        logger.warning(f"User not found: {username}")
        raise credentials_exception

    # Role changes invalidate older tokens
    try:
        if Role.parse(user.role) != Role.parse(role):
            logger.warning(f"Role mismatch for user {username}: token={role}, db={user.role}")
            raise credentials_exception
    except ValueError:
        logger.warning(f"Unrecognised role for user {username}: {user.role!r}")
        raise credentials_exception

    return user

def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    """Explicit session context handed to every policy check."""
    return Actor.from_user(user)

def get_local_now() -> datetime:
    """Local wall-clock time; overridden in tests to pin the clock."""
    return local_now()

class RoleChecker:
    def __init__(self, allowed_roles):
        self.allowed_roles = {Role.parse(r) for r in allowed_roles}

    def __call__(self, actor: Actor = Depends(get_current_actor)):
        if actor.role not in self.allowed_roles:
            logger.warning(f"Unauthorized access attempt: user {actor.id} ({actor.role.value}) needs one of {sorted(r.value for r in self.allowed_roles)}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted",
            )
        return True

allow_admin = RoleChecker([Role.ADMIN])
allow_leader = RoleChecker([Role.ADMIN, Role.LEADER])

router = APIRouter()

@router.get("/users/me", response_model=UserOut)
def read_users_me(current_user: User = Depends(get_current_user)):
    """Get current user's profile"""
    return current_user

@router.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "cache": {
            "size": len(blacklist_cache),
            "max_size": CACHE_MAX_SIZE,
        }
    }

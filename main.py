from fastapi import APIRouter, FastAPI, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from dotenv import load_dotenv
import os
import logging

# Database imports
from db import get_db, engine

# Model imports
from models import User, Base, TokenBlacklist

# Schema imports
from schemas import Token, LogoutResponse

# Auth imports
from auth import (
    verify_password,
    create_access_token,
    decode_access_token,
    normalize_username,
    ACCESS_TOKEN_EXPIRE_MINUTES
)

# Dependency imports
from dependencies import (
    get_current_user,
    oauth2_scheme,
    blacklist_cache
)
from dependencies import router as dependencies_router

# Router imports
from router import attendance, auth_password, departments, leave, tasks, users
from services.access_policy import Role
from services.scheduler import attendance_scheduler

load_dotenv()

logger = logging.getLogger("main")

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(",")
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "1") != "0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    if ENABLE_SCHEDULER:
        attendance_scheduler.start()
    try:
        yield
    finally:
        # shutdown
        attendance_scheduler.stop()


app = FastAPI(
    title="Attendance & Tasks API",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Type", "Content-Encoding"],
)

@app.middleware("http")
async def add_utf8_header(request, call_next):
    response = await call_next(request)
    if response.headers.get("content-type", "").startswith("application/json"):
        response.headers["content-type"] = "application/json; charset=utf-8"
    return response


router = APIRouter()

@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    # Authenticate user and return JWT token.
    username = normalize_username(form_data.username)
    user = db.query(User).filter(User.username == username).first()
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.info(f"Failed login for {username!r}")
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        role = Role.parse(user.role).value
    except ValueError:
        logger.error(f"User {user.username} has an unrecognised role {user.role!r}")
        raise HTTPException(status_code=403, detail="Account role is not recognised")

    access_token = create_access_token(
        data={"sub": user.username, "role": role},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        "username": user.username,
        "role": role
    }

@router.post("/logout", response_model=LogoutResponse)
def logout(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Logout by blacklisting the current JWT."""
    payload = decode_access_token(token)
    jti = payload.get("jti")
    exp = payload.get("exp")

    if not jti:
        logger.warning(f"Logout attempt without JTI: {current_user.username}")
        raise HTTPException(
            status_code=400,
            detail="Token does not contain required tracking ID"
        )

    existing = db.query(TokenBlacklist).filter(
        TokenBlacklist.jti == jti
    ).first()
    if existing:
        return LogoutResponse(
            message="Already logged out",
            success=True,
            username=current_user.username
        )

    token_exp = datetime.fromtimestamp(exp, tz=timezone.utc).replace(tzinfo=None)
    db.add(TokenBlacklist(
        jti=jti,
        user_id=current_user.id,
        username=current_user.username,
        token_exp=token_exp,
        reason="user_logout"
    ))
    db.commit()

    blacklist_cache[jti] = token_exp
    logger.info(f"User {current_user.username} logged out")

    return LogoutResponse(
        message="Logged out successfully",
        success=True,
        username=current_user.username
    )

# Routers
app.include_router(router)
app.include_router(dependencies_router)
app.include_router(auth_password.router)
app.include_router(users.router)
app.include_router(departments.router)
app.include_router(attendance.router)
app.include_router(tasks.router)
app.include_router(leave.router)


Base.metadata.create_all(bind=engine)

# uvicorn main:app --reload
# http://127.0.0.1:8000/docs
# for tests run: python -m pytest -q

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from attendqr.accounts import (
    authenticate,
    change_password,
    check_password_strength,
    create_user,
    user_payload,
)
from attendqr.dependencies import get_current_user, get_db
from attendqr.models import User
from attendqr.schemas.auth_schemas import ChangePasswordRequest, LoginRequest, RegisterRequest
from attendqr.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

DASHBOARDS = {
    "admin": "/admin/dashboard",
    "lecturer": "/lecturer/dashboard",
    "student": "/student/dashboard",
}


def safe_next(target):
    """Return ``target`` only when it is a path on this site, else an empty string."""
    if not target or not target.startswith("/") or target.startswith(("//", "/\\")):
        return ""
    return target


@router.get("/", response_class=HTMLResponse)
async def login_page(request: Request, next: str = None):
    """Redirects a logged-in user to their dashboard, otherwise serves the login page."""
    next = safe_next(next)
    if request.session.get("user_id"):
        target = next or DASHBOARDS.get(request.session.get("user_role"), "/me")
        return RedirectResponse(target, status_code=status.HTTP_302_FOUND)

    return templates.TemplateResponse(request, "login.html", {"next": next})


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    if payload.role == "student" and not payload.school_id:
        raise HTTPException(status_code=400, detail="Students must provide their student ID.")

    check_password_strength(payload.password)
    user = create_user(
        db,
        email=payload.email,
        full_name=payload.full_name,
        role=payload.role,
        password=payload.password,
        school_id=payload.school_id if payload.role == "student" else None,
    )

    return user_payload(user)


@router.post("/login")
async def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, payload.email, payload.password)
    if not user:
        logger.warning("Failed login attempt for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    request.session["user_id"] = user.id
    request.session["user_role"] = user.role
    request.session["user_name"] = user.full_name

    return {"user": user_payload(user), "redirect": DASHBOARDS[user.role]}


@router.get("/logout")
async def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/", status_code=status.HTTP_302_FOUND)


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return user_payload(user)


@router.post("/change-password")
async def update_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    change_password(db, user, payload.current_password, payload.new_password)
    return {"detail": "Password updated"}

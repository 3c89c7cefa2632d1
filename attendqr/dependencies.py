from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from attendqr.db import SessionLocal
from attendqr.models import User


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """Fetches the logged-in user from the session cookie, or rejects with 401."""
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = db.query(User).filter(User.id == user_id).first()

    # Deleted or deactivated since the cookie was issued
    if not user or not user.is_active:
        request.session.clear()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return user


def require_role(*roles):
    def dependency(user: User = Depends(get_current_user)):
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{' or '.join(r.capitalize() for r in roles)} access required",
            )
        return user
    return dependency


get_student = require_role("student")
get_lecturer = require_role("lecturer")
get_admin = require_role("admin")

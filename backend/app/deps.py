"""
FastAPI dependencies - get_db, get_current_user, get_admin_user, etc.
"""

from fastapi import Request, HTTPException, Depends

from .errors import AuthorizationError
from .models.user import User
from .utils.auth import decode_token


def get_db(request: Request):
    """Database bound to the running application"""
    return request.app.state.db


async def get_current_user(request: Request, db=Depends(get_db)) -> User:
    """Get current user from a bearer token or the session_token cookie"""
    session_token = request.cookies.get("session_token")

    if not session_token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            session_token = auth_header.split(" ")[1]

    if not session_token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    jwt_payload = decode_token(session_token)
    if not jwt_payload:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = jwt_payload.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    user = await db.users.find_one({"user_id": user_id}, {"_id": 0})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if user.get("blocked"):
        raise HTTPException(status_code=403, detail="Your account has been blocked. Contact the school administrator.")

    return User(**user)


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    """Dependency to ensure user has admin privileges"""
    if user.role != "admin":
        raise AuthorizationError("Access restricted to admins")
    return user


async def get_teacher_user(user: User = Depends(get_current_user)) -> User:
    """Teachers only; assignment to a subject/class is checked per operation"""
    if user.role != "teacher":
        raise AuthorizationError("Access restricted to teachers")
    return user

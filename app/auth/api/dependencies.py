from typing import Annotated, Optional
from fastapi import Depends, Request, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.auth.api.dto import StaffIdentity
from pkg.auth_token_client.client import TokenClient

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)

STAFF_ROLES = {"staff", "admin"}


def get_token_client(request: Request) -> TokenClient:
    """Get token client from app state."""
    if not hasattr(request.app.state, "token_client"):
        raise RuntimeError("Token client not initialized. Ensure main.py startup wires app.state.*")
    return request.app.state.token_client


async def get_current_staff(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> StaffIdentity:
    """
    Dependency resolving the staff member behind the bearer token.

    Usage:
        @router.get("/requests")
        async def list_requests(staff: StaffIdentity = Depends(get_current_staff)):
            hotel_id = staff.hotel_id
            ...
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = get_token_client(request).decode_payload(credentials.credentials)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e) or "Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.role not in STAFF_ROLES or not payload.hotel_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff access required")

    return StaffIdentity(
        user_id=payload.user_id,
        role=payload.role,
        hotel_id=str(payload.hotel_id),
        email=payload.email,
    )


# Type alias for cleaner dependency injection
CurrentStaffDep = Annotated[StaffIdentity, Depends(get_current_staff)]

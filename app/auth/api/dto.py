from pydantic import BaseModel


class BaseResponse(BaseModel):
    status: bool
    message: str
    data: dict | list | None = None


class StaffIdentity(BaseModel):
    """Authenticated staff member, as carried in the bearer token."""

    user_id: str
    role: str
    hotel_id: str
    email: str | None = None

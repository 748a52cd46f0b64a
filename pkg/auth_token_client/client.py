from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt


@dataclass
class TokenPayload:
    user_id: str
    role: str
    hotel_id: str | None = None
    email: str | None = None


class TokenClient:
    def __init__(self, secret_key: str, leeway_seconds: int = 10, lifetime: timedelta = timedelta(hours=24)):
        self.secret_key = secret_key
        # Allow small clock skew when decoding tokens
        self.leeway_seconds = leeway_seconds
        self.lifetime = lifetime

    def create_access_token(self, payload: TokenPayload) -> str:
        """Create a signed staff access token"""
        now = datetime.now(timezone.utc)
        claims = {
            "user_id": str(payload.user_id),
            "role": payload.role,
            "hotel_id": payload.hotel_id,
            "email": payload.email,
            "iat": int(now.timestamp()),
            "exp": now + self.lifetime,
        }
        return jwt.encode(claims, self.secret_key, algorithm="HS256")

    def decode_token(self, token: str) -> dict:
        """Decode and verify a token"""
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=["HS256"],
                leeway=self.leeway_seconds,
            )
        except jwt.ExpiredSignatureError:
            raise ValueError("Token has expired")
        except jwt.InvalidTokenError:
            raise ValueError("Invalid token")

    def decode_payload(self, token: str) -> TokenPayload:
        """Decode an access token into a TokenPayload."""
        claims = self.decode_token(token)
        if not claims.get("user_id") or not claims.get("role"):
            raise ValueError("Invalid token")
        return TokenPayload(
            user_id=str(claims["user_id"]),
            role=str(claims["role"]),
            hotel_id=claims.get("hotel_id"),
            email=claims.get("email"),
        )

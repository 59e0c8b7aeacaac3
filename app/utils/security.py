"""
Security utilities and authentication
"""

import hashlib
import hmac
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import settings
from app.core.errors import ForbiddenError, UnauthorizedError

class Role:
    CUSTOMER = "CUSTOMER"
    ORGANIZER = "ORGANIZER"

    ALL = (CUSTOMER, ORGANIZER)

@dataclass(frozen=True)
class AuthContext:
    """Caller identity handed explicitly to every core operation"""
    user_id: int
    role: str

    @property
    def is_organizer(self) -> bool:
        return self.role == Role.ORGANIZER

    def require_organizer(self) -> None:
        if not self.is_organizer:
            raise ForbiddenError("Organizer role required")

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

security = HTTPBearer(auto_error=False)

def _sign(payload: str) -> str:
    return hmac.new(
        settings.SECRET_KEY.encode(),
        payload.encode(),
        hashlib.sha256
    ).hexdigest()

def issue_token(user_id: int, role: str) -> str:
    """Issue a bearer token of the form <user_id>.<role>.<signature>"""
    payload = f"{user_id}.{role}"
    return f"{payload}.{_sign(payload)}"

def decode_token(token: str) -> AuthContext:
    """Verify a bearer token and return the caller's AuthContext"""
    parts = token.split(".")
    if len(parts) != 3:
        raise UnauthorizedError()

    user_id, role, signature = parts
    if not hmac.compare_digest(_sign(f"{user_id}.{role}"), signature):
        raise UnauthorizedError()
    if role not in Role.ALL or not user_id.isdigit():
        raise UnauthorizedError()

    return AuthContext(user_id=int(user_id), role=role)

def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthContext:
    """Resolve the AuthContext from the Authorization header"""
    if credentials is None:
        raise UnauthorizedError("Missing bearer token")
    return decode_token(credentials.credentials)

def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    # Clean old requests
    rate_limiter[client_ip] = [
        req_time for req_time in rate_limiter[client_ip]
        if req_time > minute_ago
    ]

    if len(rate_limiter[client_ip]) >= limit:
        return False

    rate_limiter[client_ip].append(current_time)
    return True

def get_client_ip(request) -> str:
    """Extract client IP from request"""
    # Check for forwarded IP first (for reverse proxy setups)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AuthContext:
    """
    Who is performing an operation, resolved server-side for every request.

    Services take this instead of reading role or session data supplied by the
    client. System actors (webhook, sweeper) use a label and no user id.
    """

    user_id: Optional[int] = None
    is_staff: bool = False
    label: str = ""
    ip_address: Optional[str] = None
    user_agent: str = ""

    @property
    def actor_label(self) -> str:
        if self.label:
            return self.label
        if self.user_id is None:
            return "anonymous"
        prefix = "admin" if self.is_staff else "user"
        return f"{prefix}:{self.user_id}"

    @classmethod
    def system(cls, label: str) -> "AuthContext":
        return cls(label=label)

    @classmethod
    def from_request(cls, request) -> "AuthContext":
        user = getattr(request, "user", None)
        authenticated = bool(user and user.is_authenticated)
        return cls(
            user_id=user.pk if authenticated else None,
            is_staff=bool(authenticated and user.is_staff),
            ip_address=get_client_ip(request),
            user_agent=request.META.get("HTTP_USER_AGENT", "")[:300],
        )

    def owns(self, owner_id: Optional[int]) -> bool:
        return self.user_id is not None and owner_id == self.user_id


def get_client_ip(request) -> Optional[str]:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real = request.META.get("HTTP_X_REAL_IP")
    if real:
        return real
    return request.META.get("REMOTE_ADDR") or None

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional


@dataclass
class StaticIdentity:
    """Identity for a local single-user install.

    Sign-in itself lives with the external auth provider; this only tracks
    which user is active and until when the session is valid.
    """

    user_id: Optional[str] = "local"
    expires_at: Optional[datetime] = None
    clock: Callable[[], datetime] = datetime.now

    def current_user_id(self) -> Optional[str]:
        return self.user_id if self.is_session_valid() else None

    def is_session_valid(self) -> bool:
        if self.user_id is None:
            return False
        return self.expires_at is None or self.clock() < self.expires_at

    def extend(self, minutes: int) -> None:
        self.expires_at = self.clock() + timedelta(minutes=minutes)

    def sign_out(self) -> None:
        self.user_id = None

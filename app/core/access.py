from app.core.exceptions import Unauthorized
from app.core.logger import get_logger

logger = get_logger("access")


class AccessControl:
    """Holds the administrator address fixed at construction."""

    def __init__(self, owner: str):
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: str) -> bool:
        return caller == self._owner

    def require_owner(self, caller: str) -> None:
        """Raise Unauthorized unless `caller` is the administrator."""
        if not self.is_owner(caller):
            logger.warning("Privileged read refused", extra={"caller": caller})
            raise Unauthorized()

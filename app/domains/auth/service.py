import hmac
import logging
from typing import Optional

from app.core.config import Settings
from app.core.errors import Unauthorized

logger = logging.getLogger(__name__)


class AdminAuthService:
    def __init__(self, config: Settings):
        self.config = config

    def verify_password(self, password: Optional[str]) -> bool:
        """
        Compare against the process-wide admin secret.

        An unset secret never matches, so a missing ADMIN_PASSWORD locks the
        admin routes instead of opening them.
        """
        expected = self.config.admin_password
        if not expected or not password:
            return False
        return hmac.compare_digest(password.encode(), expected.encode())

    def require_admin(self, password: Optional[str]) -> None:
        if not self.verify_password(password):
            logger.warning("Rejected admin request with invalid password")
            raise Unauthorized()

"""
User Service - Manage users in Firestore.
"""

from app.config.firebase import get_db
from app.core.errors import AuthenticationError, ValidationError
from app.utils.firestore_helpers import where_filter, snapshot_to_dict, to_datetime
from app.utils.security import hash_password, verify_password, registration_errors
from datetime import datetime, timezone
from typing import Optional, Dict
import logging

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class UserService:
    """
    Service for user registration and credential checks.
    """

    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        return self._db if self._db is not None else get_db()

    def _find_one(self, field: str, value: str) -> Optional[Dict]:
        query = where_filter(self.db.collection(USERS_COLLECTION), field, "==", value).limit(1)
        for doc in query.stream():
            return snapshot_to_dict(doc)
        return None

    def get_user(self, user_id: str) -> Optional[Dict]:
        """
        Get user by document id.

        Returns:
            User dict (including password_hash) or None if not found
        """
        if not user_id:
            return None
        return snapshot_to_dict(self.db.collection(USERS_COLLECTION).document(user_id).get())

    def get_user_by_username(self, username: str) -> Optional[Dict]:
        return self._find_one("username", username)

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        return self._find_one("email", email)

    def register(self, username: str, email: str, password: str) -> Dict:
        """
        Create a new user.

        Raises:
            ValidationError: invalid fields (all messages joined) or duplicate username/email.
        """
        errors = registration_errors(username, email, password)
        if errors:
            raise ValidationError(", ".join(errors))

        username = username.strip()
        email = email.strip().lower()

        if self.get_user_by_username(username):
            raise ValidationError("Username already exists")
        if self.get_user_by_email(email):
            raise ValidationError("Email already exists")

        user_ref = self.db.collection(USERS_COLLECTION).document()
        user_data = {
            "username": username,
            "email": email,
            "password_hash": hash_password(password),
            "created_at": datetime.now(timezone.utc),
        }
        user_ref.set(user_data)

        logger.info(f"User created: {user_ref.id} ({username})")
        user_data["id"] = user_ref.id
        return user_data

    def authenticate(self, username: str, password: str) -> Dict:
        """
        Check credentials.

        Raises:
            AuthenticationError: unknown user or wrong password (same message for both).
        """
        user = self.get_user_by_username((username or "").strip())
        if not user or not verify_password(password, user.get("password_hash", "")):
            raise AuthenticationError("Invalid credentials")
        return user

    @staticmethod
    def public_view(user: Dict) -> Dict:
        """User dict safe to return to clients."""
        return {
            "id": user["id"],
            "username": user.get("username", ""),
            "email": user.get("email", ""),
            "created_at": to_datetime(user.get("created_at")),
        }


# Global service instance (singleton pattern)
_user_service = None


def get_user_service() -> UserService:
    """
    Get or create UserService singleton instance.

    Returns:
        UserService: The global user service instance
    """
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service

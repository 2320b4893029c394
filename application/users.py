"""User accounts: registration, authentication and the first-run admin bootstrap"""
import logging
from threading import Lock
from typing import Dict, List, Optional

from domain.auth import UserInDB
from domain.enums import Role
from domain.exceptions import (
    AuthenticationFailed,
    InvalidUsername,
    PermissionDenied,
    UserAlreadyExists,
    UserNotFound,
    WeakPassword,
)
from domain.repositories import UserRepository
from infrastructure.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


class UserService:
    """Registry of user accounts backed by a UserRepository

    Write failures of the user file propagate as PersistenceFailure: unlike
    reservations, an account that was never stored must not appear to exist.
    """

    def __init__(self, repository: UserRepository, min_password_length: int = 8):
        self.repository = repository
        self.min_password_length = min_password_length
        self._users: Dict[str, UserInDB] = {}
        self._lock = Lock()

    def load(self) -> None:
        users = self.repository.load_users() or []
        with self._lock:
            self._users = {user.username: user for user in users}
        if self.needs_bootstrap():
            logger.warning("No admin account found; an admin must be created before use")

    # ==================== QUERY METHODS ====================
    def needs_bootstrap(self) -> bool:
        """True while no Admin account exists"""
        with self._lock:
            return not any(user.role == Role.ADMIN for user in self._users.values())

    def get(self, username: str) -> UserInDB:
        with self._lock:
            user = self._users.get(username)
        if user is None:
            raise UserNotFound(f"User '{username}' not found")
        return user

    def find(self, username: str) -> Optional[UserInDB]:
        with self._lock:
            return self._users.get(username)

    def list_users(self) -> List[UserInDB]:
        with self._lock:
            return list(self._users.values())

    # ==================== OPERATIONS ====================
    def register(self, username: str, password: str, role: Role = Role.USER, full_name: Optional[str] = None) -> UserInDB:
        """Create a new account once the first Admin exists"""
        if self.needs_bootstrap():
            raise PermissionDenied("An admin account must be created first")
        return self._create(username, password, role, full_name, bootstrap=False)

    def bootstrap_admin(self, username: str, password: str, full_name: Optional[str] = None) -> UserInDB:
        """Create the first Admin; only allowed while no Admin exists"""
        if not self.needs_bootstrap():
            raise PermissionDenied("An admin account already exists")
        return self._create(username, password, Role.ADMIN, full_name, bootstrap=True)

    def _create(
        self, username: str, password: str, role: Role, full_name: Optional[str], bootstrap: bool
    ) -> UserInDB:
        username = (username or "").strip()
        if not username:
            raise InvalidUsername("Username cannot be empty")
        if len(password or "") < self.min_password_length:
            raise WeakPassword(
                f"Password must be at least {self.min_password_length} characters long"
            )

        user = UserInDB(
            username=username,
            full_name=full_name,
            role=role,
            hashed_password=get_password_hash(password)
        )
        with self._lock:
            # Admin state may have changed while the password was hashed
            has_admin = any(u.role == Role.ADMIN for u in self._users.values())
            if bootstrap and has_admin:
                raise PermissionDenied("An admin account already exists")
            if not bootstrap and not has_admin:
                raise PermissionDenied("An admin account must be created first")
            if username in self._users:
                raise UserAlreadyExists(f"Username '{username}' already exists")
            users = list(self._users.values()) + [user]
            self.repository.save_users(users)
            self._users[username] = user

        logger.info("Registered %s account '%s'", role.value, username)
        return user

    def authenticate(self, username: str, password: str) -> UserInDB:
        """Check credentials; the error never says which field was wrong"""
        user = self.find(username)
        if user is None or user.disabled or not verify_password(password, user.hashed_password):
            logger.warning("Failed login for '%s'", username)
            raise AuthenticationFailed("Incorrect username or password")
        return user

    def remove_user(self, username: str) -> UserInDB:
        """Delete an account; the last Admin cannot be removed"""
        with self._lock:
            user = self._users.get(username)
            if user is None:
                raise UserNotFound(f"User '{username}' not found")
            admins = [u for u in self._users.values() if u.role == Role.ADMIN]
            if user.role == Role.ADMIN and len(admins) == 1:
                raise PermissionDenied("Cannot remove the last admin account")
            remaining = [u for u in self._users.values() if u.username != username]
            self.repository.save_users(remaining)
            del self._users[username]

        logger.info("Removed account '%s'", username)
        return user

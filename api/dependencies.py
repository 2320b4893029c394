"""API Dependencies - Engine wiring and authentication"""
import threading

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from application.services import BookingEngine
from domain.auth import UserInDB
from domain.time_slots import SlotCatalog
from infrastructure.config import Settings
from infrastructure.repositories.json_repositories import JsonRoomRepository, JsonUserRepository
from infrastructure.security import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

_engine_lock = threading.Lock()


def build_engine(settings: Settings) -> BookingEngine:
    """Create and load an engine backed by the configured JSON files"""
    engine = BookingEngine(
        room_repository=JsonRoomRepository(settings.rooms_file),
        user_repository=JsonUserRepository(settings.users_file),
        catalog=SlotCatalog.create(
            settings.slot_interval_minutes, settings.day_start, settings.day_end
        ),
        default_rooms=settings.default_rooms,
        max_undo_history=settings.max_undo_history,
        notification_outbox_size=settings.notification_outbox_size,
        min_password_length=settings.min_password_length
    )
    return engine.load()


def ensure_engine(app: FastAPI) -> BookingEngine:
    """Engine stored on the app, built on first use"""
    with _engine_lock:
        if getattr(app.state, "engine", None) is None:
            app.state.engine = build_engine(app.state.settings)
        return app.state.engine


def get_engine(request: Request) -> BookingEngine:
    return ensure_engine(request.app)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    token: str = Depends(oauth2_scheme),
    engine: BookingEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings)
) -> UserInDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    username = decode_access_token(token, settings.secret_key, settings.algorithm)
    if username is None:
        raise credentials_exception

    user = engine.users.find(username)
    if user is None:
        raise credentials_exception
    return user


def get_current_active_user(current_user: UserInDB = Depends(get_current_user)) -> UserInDB:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def require_admin(current_user: UserInDB = Depends(get_current_active_user)) -> UserInDB:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this feature."
        )
    return current_user

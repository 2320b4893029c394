from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Auth
    Token, UserResponse, RegisterUserRequest, CreateUserRequest, SetupStatusResponse,
    # Rooms
    CreateRoomRequest, RoomResponse, SlotCatalogResponse,
    # Reservations
    CreateReservationRequest, CancelReservationRequest, ReservationResponse,
    ReservationOutcomeResponse, DisplacementNoticeResponse, SlotStatusResponse,
    CommandResponse, MaintenanceResponse
)
from api.dependencies import (
    ensure_engine, get_engine, get_settings, get_current_active_user, require_admin
)
from application.commands import Command
from application.services import BookingEngine
from application.store import ReservationOutcome
from domain.auth import User, UserInDB
from domain.entities import Reservation, Room
from domain.enums import Purpose, Role
from domain.exceptions import (
    RoomBookingError, InvalidInterval, InvalidTimeFormat, InvalidRoomName, InvalidUsername,
    WeakPassword, AuthenticationFailed, PermissionDenied, RoomNotFound, UserNotFound,
    ReservationNotFound, SlotNotFound, SlotUnavailable, RoomAlreadyExists,
    UserAlreadyExists, PersistenceFailure
)
from domain.time_slots import format_time_label
from domain.value_objects import DisplacementNotice, SlotStatus
from infrastructure.config import Settings
from infrastructure.logging_config import configure_logging
from infrastructure.scheduler import MaintenanceScheduler
from infrastructure.security import create_access_token, verify_password

# Error kind -> HTTP status; the most specific class in the MRO wins
ERROR_STATUS = {
    InvalidInterval: 400,
    InvalidTimeFormat: 400,
    InvalidRoomName: 400,
    InvalidUsername: 400,
    WeakPassword: 400,
    AuthenticationFailed: 401,
    PermissionDenied: 403,
    RoomNotFound: 404,
    UserNotFound: 404,
    ReservationNotFound: 404,
    SlotNotFound: 404,
    SlotUnavailable: 409,
    RoomAlreadyExists: 409,
    UserAlreadyExists: 409,
    PersistenceFailure: 503,
}

router = APIRouter()


async def booking_error_handler(request: Request, exc: RoomBookingError) -> JSONResponse:
    """Translate engine errors into HTTP responses"""
    status_code = next(
        (ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS), 400
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
        headers=headers
    )


# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@router.get("/api/health", tags=["Health"])
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@router.get("/api/enums/purposes", tags=["Enum Reference"])
def get_purposes():
    """Get all Purpose values with their priority (lower = stronger)"""
    return {
        "values": {item.value: item.priority for item in Purpose},
        "description": "Unrecognized purposes are booked as Other, the weakest priority"
    }

@router.get("/api/enums/roles", tags=["Enum Reference"])
def get_roles():
    """Get all Role values"""
    return {"values": [item.value for item in Role]}

# ============================================================================
# AUTH & USER ENDPOINTS
# ============================================================================

@router.post("/token", response_model=Token, tags=["Auth"])
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    engine: BookingEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings)
):
    user = engine.users.authenticate(form_data.username, form_data.password)
    access_token = create_access_token(
        data={"sub": user.username},
        secret_key=settings.secret_key,
        algorithm=settings.algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes)
    )
    return {"access_token": access_token, "token_type": "bearer"}

@router.get("/users/me", response_model=UserResponse, tags=["Auth"])
def read_users_me(current_user: UserInDB = Depends(get_current_active_user)):
    return _user_to_response(current_user)

@router.get("/api/setup/status", response_model=SetupStatusResponse, tags=["Auth"])
def get_setup_status(engine: BookingEngine = Depends(get_engine)):
    """Whether the first admin account still has to be created"""
    return SetupStatusResponse(needs_admin=engine.users.needs_bootstrap())

@router.post("/api/setup/admin", response_model=UserResponse, status_code=201, tags=["Auth"])
def create_first_admin(request: RegisterUserRequest, engine: BookingEngine = Depends(get_engine)):
    """Create the bootstrap admin; refused once any admin exists"""
    _check_passwords_match(request)
    user = engine.users.bootstrap_admin(request.username, request.password, request.full_name)
    return _user_to_response(user)

@router.post("/api/users/register", response_model=UserResponse, status_code=201, tags=["Users"])
def register_user(request: RegisterUserRequest, engine: BookingEngine = Depends(get_engine)):
    """Self-registration; always creates a User-role account"""
    _check_passwords_match(request)
    user = engine.users.register(request.username, request.password, Role.USER, request.full_name)
    return _user_to_response(user)

@router.get("/api/users", response_model=List[UserResponse], tags=["Users"])
def list_users(
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(require_admin)
):
    return [_user_to_response(u) for u in engine.users.list_users()]

@router.post("/api/users", response_model=UserResponse, status_code=201, tags=["Users"])
def create_user(
    request: CreateUserRequest,
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(require_admin)
):
    """Admin creates an account with any role"""
    user = engine.users.register(request.username, request.password, request.role, request.full_name)
    return _user_to_response(user)

@router.delete("/api/users/{username}", response_model=UserResponse, tags=["Users"])
def delete_user(
    username: str,
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(require_admin)
):
    return _user_to_response(engine.users.remove_user(username))

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@router.get("/api/slots", response_model=SlotCatalogResponse, tags=["Rooms"])
def get_slots(engine: BookingEngine = Depends(get_engine)):
    """The fixed catalog of bookable time slots"""
    return SlotCatalogResponse(
        interval_minutes=engine.catalog.interval_minutes,
        labels=engine.catalog.labels
    )

@router.get("/api/rooms", response_model=List[RoomResponse], tags=["Rooms"])
def get_rooms(
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    return [_room_to_response(room) for room in engine.rooms.list_rooms()]

@router.post("/api/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
def add_room(
    request: CreateRoomRequest,
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(require_admin)
):
    return _room_to_response(engine.rooms.add_room(request.name))

@router.delete("/api/rooms/{room_name}", response_model=RoomResponse, tags=["Rooms"])
def remove_room(
    room_name: str,
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(require_admin)
):
    """Remove a room and all of its reservations"""
    return _room_to_response(engine.rooms.remove_room(room_name))

@router.get("/api/rooms/{room_name}/reservations", response_model=List[ReservationResponse], tags=["Rooms"])
def get_room_reservations(
    room_name: str,
    reservation_date: date = Query(..., alias="date"),
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    """Active reservations of a room on one date"""
    reservations = engine.store.list_reservations(room_name, reservation_date)
    return [_reservation_to_response(r) for r in reservations]

@router.get("/api/rooms/{room_name}/day", response_model=List[SlotStatusResponse], tags=["Rooms"])
def get_room_day(
    room_name: str,
    reservation_date: date = Query(..., alias="date"),
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    """Slot-by-slot occupancy of a room on one date"""
    return [_slot_status_to_response(s) for s in engine.availability.day_view(room_name, reservation_date)]

@router.get("/api/rooms/{room_name}/free-slots", response_model=List[str], tags=["Rooms"])
def get_room_free_slots(
    room_name: str,
    reservation_date: date = Query(..., alias="date"),
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    """Catalog slots of a room still free on one date"""
    return engine.availability.free_slots(room_name, reservation_date)

@router.get("/api/availability", response_model=List[RoomResponse], tags=["Rooms"])
def get_available_rooms(
    reservation_date: date = Query(..., alias="date"),
    start: str = Query(..., description="HH:MM"),
    end: str = Query(..., description="HH:MM"),
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    """Rooms free for the whole [start, end) window"""
    rooms = engine.availability.rooms_available(reservation_date, start, end)
    return [_room_to_response(room) for room in rooms]

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@router.post("/api/reservations", response_model=ReservationOutcomeResponse, status_code=201, tags=["Reservations"])
def create_reservation(
    request: CreateReservationRequest,
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    """Create new reservation (may override lower-priority bookings)"""
    if request.priority is not None and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can set an explicit priority")

    outcome = engine.book(
        room_name=request.room_name,
        reservation_date=request.reservation_date,
        purpose=request.purpose,
        leader=request.leader,
        start=request.start_time,
        end=request.end_time,
        slots=request.slots,
        info=request.info,
        priority=request.priority,
        created_by=current_user.username
    )
    return _outcome_to_response(outcome)

@router.post(
    "/api/rooms/{room_name}/reservations/{reservation_id}/cancel",
    response_model=ReservationResponse,
    tags=["Reservations"]
)
def cancel_reservation(
    room_name: str,
    reservation_id: str,
    request: CancelReservationRequest,
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    """Cancel a reservation after re-confirming the caller's password"""
    if not verify_password(request.password, current_user.hashed_password):
        raise AuthenticationFailed("Incorrect username or password")

    target = engine.store.get_reservation(room_name, reservation_id)
    if not current_user.is_admin and target.created_by != current_user.username:
        raise PermissionDenied("You can only cancel your own reservations")

    return _reservation_to_response(engine.cancel(room_name, target.reservation_id))

@router.post("/api/undo", response_model=CommandResponse, tags=["Reservations"])
def undo_last(
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    return _command_to_response(engine.undo(_owner_or_admin(current_user)))

@router.post("/api/redo", response_model=CommandResponse, tags=["Reservations"])
def redo_last(
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    return _command_to_response(engine.redo(_owner_or_admin(current_user)))

@router.get("/api/notifications", response_model=List[DisplacementNoticeResponse], tags=["Reservations"])
def get_notifications(
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(get_current_active_user)
):
    """Recent override notices; users see those for their own bookings"""
    notices = engine.notifications.recent()
    if not current_user.is_admin:
        own = {current_user.username, current_user.full_name}
        notices = [n for n in notices if n.leader in own]
    return [_notice_to_response(n) for n in notices]

# ============================================================================
# MAINTENANCE ENDPOINTS
# ============================================================================

@router.post("/api/maintenance/sweep", response_model=MaintenanceResponse, tags=["Maintenance"])
def run_sweep(
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(require_admin)
):
    return MaintenanceResponse(affected=engine.maintenance.sweep_expired())

@router.post("/api/maintenance/reset", response_model=MaintenanceResponse, tags=["Maintenance"])
def run_daily_reset(
    engine: BookingEngine = Depends(get_engine),
    current_user: UserInDB = Depends(require_admin)
):
    return MaintenanceResponse(affected=engine.maintenance.daily_reset())

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _check_passwords_match(request: RegisterUserRequest) -> None:
    if request.password != request.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")

def _owner_or_admin(user: UserInDB):
    """Authorizer for undo/redo: the same rule as cancelling"""
    def authorize(command: Command) -> None:
        if not user.is_admin and command.reservation.created_by != user.username:
            raise PermissionDenied("You can only undo or redo your own reservations")
    return authorize

def _user_to_response(user: User) -> UserResponse:
    """Convert User entity to UserResponse"""
    return UserResponse(
        user_id=user.user_id,
        username=user.username,
        full_name=user.full_name,
        role=user.role.value,
        disabled=user.disabled
    )

def _room_to_response(room: Room) -> RoomResponse:
    return RoomResponse(name=room.name)

def _reservation_to_response(reservation: Reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        room_name=reservation.room_name,
        reservation_date=reservation.reservation_date,
        start_time=format_time_label(reservation.start_time),
        end_time=format_time_label(reservation.end_time),
        duration_minutes=reservation.time_range.duration_minutes(),
        purpose=reservation.purpose.value,
        priority=reservation.priority,
        leader=reservation.leader,
        info=reservation.info,
        active=reservation.active,
        created_by=reservation.created_by,
        created_at=reservation.created_at
    )

def _notice_to_response(notice: DisplacementNotice) -> DisplacementNoticeResponse:
    return DisplacementNoticeResponse(
        room_name=notice.room_name,
        reservation_id=notice.reservation_id,
        purpose=notice.purpose.value,
        reservation_date=notice.reservation_date,
        start_time=format_time_label(notice.start_time),
        end_time=format_time_label(notice.end_time),
        leader=notice.leader,
        displaced_by=notice.displaced_by,
        message=notice.message()
    )

def _outcome_to_response(outcome: ReservationOutcome) -> ReservationOutcomeResponse:
    return ReservationOutcomeResponse(
        reservation=_reservation_to_response(outcome.reservation),
        index=outcome.index,
        outcome=outcome.outcome.value,
        displaced=[_notice_to_response(n) for n in outcome.displaced]
    )

def _slot_status_to_response(slot: SlotStatus) -> SlotStatusResponse:
    return SlotStatusResponse(
        label=slot.label,
        occupied=slot.occupied,
        reservation=_reservation_to_response(slot.reservation) if slot.reservation else None
    )

def _command_to_response(command: Optional[Command]) -> CommandResponse:
    if command is None:
        return CommandResponse(performed=False)
    return CommandResponse(
        performed=True,
        kind=command.kind.value,
        reservation=_reservation_to_response(command.reservation)
    )

# ============================================================================
# APPLICATION FACTORY
# ============================================================================

@asynccontextmanager
async def lifespan(application: FastAPI):
    """Load the engine and run the maintenance timers while the app is up"""
    settings: Settings = application.state.settings
    engine = ensure_engine(application)
    scheduler = None
    if settings.enable_maintenance:
        scheduler = MaintenanceScheduler(engine.maintenance, settings.sweep_interval_seconds)
        scheduler.start()
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()

def create_app(settings: Optional[Settings] = None, engine: Optional[BookingEngine] = None) -> FastAPI:
    """Build the HTTP adapter; the engine is created from settings on first use"""
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    application = FastAPI(
        title="Room Booking API",
        description="Room reservation engine with priority override and undo/redo",
        version="1.0.0",
        lifespan=lifespan
    )
    application.state.settings = settings
    application.state.engine = engine
    application.include_router(router)
    application.add_exception_handler(RoomBookingError, booking_error_handler)
    return application

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

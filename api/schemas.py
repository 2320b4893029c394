"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from uuid import UUID
from typing import List, Optional

from domain.enums import Role


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    access_token: str
    token_type: str


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    full_name: Optional[str] = None
    role: str
    disabled: bool = False


class RegisterUserRequest(BaseModel):
    """Self-registration request DTO"""
    username: str = Field(min_length=1)
    password: str
    confirm_password: str
    full_name: Optional[str] = None


class CreateUserRequest(BaseModel):
    """Admin-created account DTO"""
    username: str = Field(min_length=1)
    password: str
    role: Role = Role.USER
    full_name: Optional[str] = None


class SetupStatusResponse(BaseModel):
    needs_admin: bool


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    name: str


class RoomResponse(BaseModel):
    """Room response DTO"""
    name: str


class SlotCatalogResponse(BaseModel):
    interval_minutes: int
    labels: List[str]


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO

    Either start_time/end_time or a list of contiguous slots is required.
    """
    room_name: str
    reservation_date: date
    purpose: str = Field(min_length=1, description="Meeting, Study Session, Presentation or Other")
    leader: str = Field(min_length=1, description="Name of the person booking")
    info: str = ""
    start_time: Optional[str] = Field(None, description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM")
    slots: Optional[List[str]] = None
    priority: Optional[int] = Field(None, ge=0, description="Admin only; defaults to the purpose's rank")


class CancelReservationRequest(BaseModel):
    """Cancellation must be confirmed with the caller's password"""
    password: str


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    room_name: str
    reservation_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    purpose: str
    priority: int
    leader: str
    info: str
    active: bool
    created_by: str
    created_at: datetime


class DisplacementNoticeResponse(BaseModel):
    """Override notice DTO"""
    room_name: str
    reservation_id: UUID
    purpose: str
    reservation_date: date
    start_time: str
    end_time: str
    leader: str
    displaced_by: UUID
    message: str


class ReservationOutcomeResponse(BaseModel):
    reservation: ReservationResponse
    index: int
    outcome: str
    displaced: List[DisplacementNoticeResponse] = []


class SlotStatusResponse(BaseModel):
    label: str
    occupied: bool
    reservation: Optional[ReservationResponse] = None


class CommandResponse(BaseModel):
    """Undo/redo result DTO; performed is False when the stack was empty"""
    performed: bool
    kind: Optional[str] = None
    reservation: Optional[ReservationResponse] = None


class MaintenanceResponse(BaseModel):
    affected: int

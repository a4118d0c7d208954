from sqlmodel import SQLModel
from .hospital import Hospital
from .doctor import Doctor
from .schedule import Schedule
from .token_table import TokenTable, Token, TokenStatus, FAST_TRACK_TOKEN
from .booking import Booking, BookingOtp, BookingStatus
from .counter import SequenceCounter
from .scores import Scores
from .notification import Notification

__all__ = [
    "SQLModel",
    "Hospital",
    "Doctor",
    "Schedule",
    "TokenTable",
    "Token",
    "TokenStatus",
    "FAST_TRACK_TOKEN",
    "Booking",
    "BookingOtp",
    "BookingStatus",
    "SequenceCounter",
    "Scores",
    "Notification",
]

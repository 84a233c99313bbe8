from appointments.db.models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from appointments.db.models.doctor import Doctor
from appointments.db.models.time_slot import TimeSlot

__all__ = [
    "Doctor",
    "TimeSlot",
    "Booking",
    "BookingStatus",
    "ACTIVE_BOOKING_STATUSES",
]

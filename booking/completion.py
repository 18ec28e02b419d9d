"""
Lazy completion: BOOKED appointments whose end has passed become COMPLETED.

There is no background job. Read paths call derive_completed() and persist
whatever it flips.
"""

from typing import Iterable, List, Tuple

from models.appointment import Appointment, AppointmentStatus


def has_elapsed(appointment: Appointment, today_str: str, now_time_str: str) -> bool:
    """True when the appointment's end is at or before business-local now."""
    if appointment.date != today_str:
        return appointment.date < today_str
    return appointment.end_time <= now_time_str


def derive_completed(
    appointments: Iterable[Appointment], today_str: str, now_time_str: str
) -> Tuple[List[Appointment], List[str]]:
    """
    Apply the completion rule to a list of appointments.

    Returns:
        (appointments with elapsed BOOKED entries marked COMPLETED,
         ids of the appointments that changed)
    """
    result = []
    changed_ids = []
    for appointment in appointments:
        if appointment.status == AppointmentStatus.BOOKED and has_elapsed(
            appointment, today_str, now_time_str
        ):
            appointment = appointment.model_copy(
                update={"status": AppointmentStatus.COMPLETED}
            )
            if appointment.id:
                changed_ids.append(appointment.id)
        result.append(appointment)
    return result, changed_ids

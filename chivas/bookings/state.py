from sqlalchemy import update
from sqlalchemy.orm import Session

from chivas.bookings.schemas import ReservationStatus
from chivas.models import Reserva

def reservation_status(reservation: Reserva) -> ReservationStatus:
    if not reservation.vigente:
        return ReservationStatus.CANCELLED
    if reservation.reembolso and reservation.reembolso > 0:
        return ReservationStatus.REFUNDED
    if reservation.pagado:
        return ReservationStatus.PAID
    return ReservationStatus.UNPAID

def guarded_update(db: Session, reservation: Reserva, values: dict, *conditions) -> bool:
    """Write ``values`` only if the row still satisfies ``conditions``.

    Returns False when another transaction changed the row first. On success
    the in-memory instance is expired so the next access reloads it.
    """
    stmt = (
        update(Reserva)
        .where(Reserva.id == reservation.id, *conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.expire(reservation)
    return result.rowcount == 1

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chivas import validation
from chivas.bookings.ledger import CapacityLedger
from chivas.bookings.schemas import GuestInfo
from chivas.bookings.state import guarded_update
from chivas.bookings.ticket_service import TicketService
from chivas.database import unit_of_work
from chivas.exceptions import (
    AlreadyCancelled, AlreadyPaid, AlreadyRefunded, ConcurrentModification,
    DuplicateReservation, NotActive, NotFound, ValidationFailed
)
from chivas.models import Invitacion, Reserva, Usuario, Viaje, SUBTIPO_INVITADO

logger = logging.getLogger(__name__)

class BookingService:
    """Creates, edits and cancels reservations against the capacity ledger"""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = CapacityLedger(db)
        self.tickets = TicketService(db)

    def create_reservation(
        self,
        user_id: int,
        trip_id: int,
        guests: Optional[List[GuestInfo]] = None
    ) -> Reserva:
        """Reserve one seat for the user plus one per guest.

        Guest accounts, invite links, the seat deduction and every ticket are
        written in a single transaction; a failure anywhere discards all of it.
        """
        guests = guests or []

        with unit_of_work(self.db):
            user = self.db.get(Usuario, user_id)
            if not user:
                raise NotFound(f"User {user_id} not found")

            trip = self.db.get(Viaje, trip_id)
            if not trip:
                raise NotFound(f"Trip {trip_id} not found")
            if trip.cancelado:
                raise NotActive(f"Trip {trip_id} has been cancelled")

            existing = self.db.query(Reserva.id).filter(
                Reserva.id_usuario == user_id,
                Reserva.id_viaje == trip_id
            ).first()
            if existing:
                raise DuplicateReservation()

            for guest in guests:
                self._validate_guest(guest)

            seat_count = 1 + len(guests)
            reservation = Reserva(
                id_usuario=user_id,
                id_viaje=trip_id,
                n_boletas=seat_count,
                total=trip.precio * seat_count,
                vigente=True,
                pagado=False
            )
            self.db.add(reservation)
            try:
                self.db.flush()
            except IntegrityError:
                # Lost a race against another request from the same user
                raise DuplicateReservation()

            self.ledger.apply_seat_delta(trip_id, seat_count)

            for guest in guests:
                invitee = self._resolve_guest(guest)
                self._link_guest(user_id, invitee.id)
                self.tickets.issue_ticket(invitee.id, reservation.id)

            self.tickets.issue_ticket(user_id, reservation.id)

        self.db.refresh(reservation)
        logger.info(
            "Reservation %s created: user=%s trip=%s seats=%s total=%s",
            reservation.id, user_id, trip_id, seat_count, reservation.total
        )
        return reservation

    def edit_reservation(self, reservation_id: int, new_seat_count: int) -> Reserva:
        """Change the seat count of an unpaid reservation and reprice it"""
        with unit_of_work(self.db):
            reservation = self._get_reservation_or_404(reservation_id)
            trip = self.db.get(Viaje, reservation.id_viaje)
            if not trip:
                raise NotFound(f"Trip {reservation.id_viaje} not found")

            if new_seat_count < 1:
                raise ValidationFailed("n_boletas: a reservation needs at least one seat")
            self._check_editable(reservation)

            old_seat_count = reservation.n_boletas
            delta = new_seat_count - old_seat_count
            if delta > 0 and trip.cancelado:
                raise NotActive(f"Trip {trip.id} has been cancelled")

            updated = guarded_update(
                self.db, reservation,
                {"n_boletas": new_seat_count, "total": trip.precio * new_seat_count},
                Reserva.n_boletas == old_seat_count,
                Reserva.vigente.is_(True),
                Reserva.pagado.is_(False),
                Reserva.reembolso == 0
            )
            if not updated:
                self._check_editable(reservation)
                raise ConcurrentModification()

            self.ledger.apply_seat_delta(trip.id, delta)

        logger.info("Reservation %s edited: seats %s -> %s", reservation_id, old_seat_count, new_seat_count)
        return reservation

    def cancel_reservation(self, reservation_id: int) -> Reserva:
        """Release the seats of an unpaid reservation and void its tickets"""
        with unit_of_work(self.db):
            reservation = self._get_reservation_or_404(reservation_id)
            self._check_cancellable(reservation)

            seats = reservation.n_boletas
            trip_id = reservation.id_viaje
            cancelled = guarded_update(
                self.db, reservation,
                {"vigente": False},
                Reserva.vigente.is_(True),
                Reserva.pagado.is_(False)
            )
            if not cancelled:
                self._check_cancellable(reservation)
                raise ConcurrentModification()

            self.ledger.apply_seat_delta(trip_id, -seats)
            deactivated = self.tickets.set_reservation_tickets_active(reservation_id, False)

        logger.info(
            "Reservation %s cancelled: %s seats released on trip %s, %s tickets deactivated",
            reservation_id, seats, trip_id, deactivated
        )
        return reservation

    def get_reservation(self, reservation_id: int) -> Reserva:
        return self._get_reservation_or_404(reservation_id)

    def list_user_reservations(self, user_id: int, only_active: bool = False) -> List[Reserva]:
        query = self.db.query(Reserva).filter(Reserva.id_usuario == user_id)
        if only_active:
            query = query.filter(Reserva.vigente.is_(True))
        return query.order_by(Reserva.id.desc()).all()

    def list_trip_reservations(self, trip_id: int) -> List[Reserva]:
        if not self.db.get(Viaje, trip_id):
            raise NotFound(f"Trip {trip_id} not found")
        return self.db.query(Reserva).filter(Reserva.id_viaje == trip_id).order_by(Reserva.id).all()

    def _get_reservation_or_404(self, reservation_id: int) -> Reserva:
        reservation = self.db.get(Reserva, reservation_id)
        if not reservation:
            raise NotFound(f"Reservation {reservation_id} not found")
        return reservation

    def _check_editable(self, reservation: Reserva) -> None:
        if not reservation.vigente:
            raise AlreadyCancelled("Reservation is cancelled")
        if reservation.reembolso > 0:
            raise AlreadyRefunded()
        if reservation.pagado:
            raise AlreadyPaid("A paid reservation cannot be edited")

    def _check_cancellable(self, reservation: Reserva) -> None:
        if not reservation.vigente:
            raise AlreadyCancelled("Reservation is already cancelled")
        if reservation.pagado:
            raise AlreadyPaid("A paid reservation must be refunded before it is cancelled")

    def _validate_guest(self, guest: GuestInfo) -> None:
        validation.require({
            "correo": (validation.correo, guest.correo),
            "nombre": (validation.nombre_completo, guest.nombre),
            "documento": (validation.documento, guest.documento),
        })

    def _resolve_guest(self, guest: GuestInfo) -> Usuario:
        """Reuse the guest account registered under this email, or create it"""
        invitee = self.db.query(Usuario).filter(
            Usuario.correo == guest.correo,
            Usuario.subtipo == SUBTIPO_INVITADO
        ).first()
        if invitee:
            return invitee

        invitee = Usuario(
            correo=guest.correo,
            nombre=guest.nombre,
            documento=guest.documento,
            subtipo=SUBTIPO_INVITADO
        )
        self.db.add(invitee)
        self.db.flush()
        logger.info("Provisioned guest account %s for %s", invitee.id, guest.correo)
        return invitee

    def _link_guest(self, user_id: int, guest_id: int) -> None:
        """Record the invite; an existing link is not an error"""
        existing = self.db.query(Invitacion.id).filter(
            Invitacion.id_usuario == user_id,
            Invitacion.id_invitado == guest_id
        ).first()
        if existing:
            logger.info("User %s already invited guest %s", user_id, guest_id)
            return

        try:
            with self.db.begin_nested():
                self.db.add(Invitacion(id_usuario=user_id, id_invitado=guest_id))
        except IntegrityError:
            logger.info("Invite link %s -> %s inserted concurrently, keeping existing", user_id, guest_id)

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional, Tuple

from sqlalchemy.orm import Session

from chivas.bookings.state import guarded_update
from chivas.bookings.ticket_service import TicketService
from chivas.database import unit_of_work
from chivas.exceptions import (
    AlreadyPaid, AlreadyRefunded, ConcurrentModification, NotActive, NotFound, NotPaid
)
from chivas.models import Reserva, Usuario, Viaje, REEMBOLSO_PARCIAL, REEMBOLSO_TOTAL
from chivas.notifications import Notifier, notify_safely

logger = logging.getLogger(__name__)

# Refunds requested fewer than this many days before the trip are partial
PARTIAL_REFUND_DAYS = 3
PARTIAL_REFUND_FRACTION = Decimal("0.5")

class PaymentService:
    """Moves reservations between unpaid, paid and refunded.

    Notifications are sent only after the transaction has committed and a
    delivery failure never undoes the state change.
    """

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier
        self.tickets = TicketService(db)

    def confirm_payment(self, reservation_id: int, payment_method: str = "efectivo") -> Reserva:
        """Mark an unpaid reservation as paid and email the ticket codes to the payer"""
        with unit_of_work(self.db):
            reservation = self._get_reservation_or_404(reservation_id)
            self._check_payable(reservation)

            paid = guarded_update(
                self.db, reservation,
                {"pagado": True, "metodo_pago": payment_method},
                Reserva.vigente.is_(True),
                Reserva.pagado.is_(False),
                Reserva.reembolso == 0
            )
            if not paid:
                self._check_payable(reservation)
                raise ConcurrentModification()

            self.tickets.set_reservation_tickets_active(reservation_id, True)

        logger.info("Payment confirmed for reservation %s via %s", reservation_id, payment_method)
        self._notify("Pago confirmado - boletos de tu chiva", self._payment_message, reservation_id)
        return reservation

    def refund_payment(self, reservation_id: int) -> Reserva:
        """Refund a paid reservation, in full or by half depending on how close the trip is"""
        with unit_of_work(self.db):
            reservation = self._get_reservation_or_404(reservation_id)
            self._check_refundable(reservation)

            trip = self.db.get(Viaje, reservation.id_viaje)
            if not trip:
                raise NotFound(f"Trip {reservation.id_viaje} not found")

            refund_type, amount = self.refund_terms(reservation.total, trip.fecha)
            refunded = guarded_update(
                self.db, reservation,
                {"pagado": False, "reembolso": amount, "tipo_reembolso": refund_type},
                Reserva.vigente.is_(True),
                Reserva.pagado.is_(True),
                Reserva.reembolso == 0
            )
            if not refunded:
                self._check_refundable(reservation)
                raise ConcurrentModification()

            self.tickets.set_reservation_tickets_active(reservation_id, False)

        logger.info("Reservation %s refunded (%s): %s", reservation_id, refund_type, amount)
        self._notify("Reembolso de tu reserva", self._refund_message, reservation_id)
        return reservation

    @staticmethod
    def refund_terms(total: Decimal, trip_date: date, today: Optional[date] = None) -> Tuple[str, Decimal]:
        """Refund type and amount for a trip on ``trip_date`` requested ``today``"""
        today = today or date.today()
        days_until_trip = (trip_date - today).days

        if days_until_trip < PARTIAL_REFUND_DAYS:
            amount = (Decimal(total) * PARTIAL_REFUND_FRACTION).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            return REEMBOLSO_PARCIAL, amount
        return REEMBOLSO_TOTAL, Decimal(total)

    def _get_reservation_or_404(self, reservation_id: int) -> Reserva:
        reservation = self.db.get(Reserva, reservation_id)
        if not reservation:
            raise NotFound(f"Reservation {reservation_id} not found")
        return reservation

    def _check_payable(self, reservation: Reserva) -> None:
        if not reservation.vigente:
            raise NotActive("Reservation is cancelled")
        if reservation.reembolso > 0:
            raise AlreadyRefunded("A refunded reservation cannot be paid again")
        if reservation.pagado:
            raise AlreadyPaid()

    def _check_refundable(self, reservation: Reserva) -> None:
        if not reservation.vigente:
            raise NotActive("Reservation is cancelled")
        if reservation.reembolso > 0:
            raise AlreadyRefunded()
        if not reservation.pagado:
            raise NotPaid()

    def _notify(self, subject: str, compose: Callable[[int], Tuple[str, str]], reservation_id: int) -> None:
        """Runs after commit; failures are logged and never raised"""
        try:
            to_address, body = compose(reservation_id)
        except Exception:
            logger.exception("Notification for reservation %s could not be prepared", reservation_id)
            return
        notify_safely(self.notifier, to_address, subject, body)

    def _payment_message(self, reservation_id: int) -> Tuple[str, str]:
        reservation = self._get_reservation_or_404(reservation_id)
        payer = self.db.get(Usuario, reservation.id_usuario)
        codes = [ticket.codigo for ticket in self.tickets.list_reservation_tickets(reservation_id)]
        body = (
            f"Hola {payer.nombre},\n\n"
            f"Recibimos el pago de tu reserva #{reservation_id} por {reservation.total}.\n"
            f"Tus boletos:\n" + "\n".join(f"  - {code}" for code in codes)
        )
        return payer.correo, body

    def _refund_message(self, reservation_id: int) -> Tuple[str, str]:
        reservation = self._get_reservation_or_404(reservation_id)
        payer = self.db.get(Usuario, reservation.id_usuario)
        body = (
            f"Hola {payer.nombre},\n\n"
            f"Tu reserva #{reservation_id} fue reembolsada ({reservation.tipo_reembolso}) "
            f"por un valor de {reservation.reembolso}."
        )
        return payer.correo, body

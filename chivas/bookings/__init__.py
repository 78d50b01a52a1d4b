"""
Reservation & capacity ledger for chiva excursions.

- ledger.py: conditional seat deduction/release on ``Viaje.cupo``
- booking_service.py: create, edit and cancel reservations, guest provisioning
- ticket_service.py: one ticket per seat-holder with a schedule snapshot
- payment_service.py: payment confirmation and time-gated refunds
- router.py: FastAPI endpoints for reservations, payments and tickets
"""

from .router import router
from .ledger import CapacityLedger
from .booking_service import BookingService
from .ticket_service import TicketService
from .payment_service import PaymentService

__all__ = [
    "router",
    "CapacityLedger",
    "BookingService",
    "TicketService",
    "PaymentService",
]

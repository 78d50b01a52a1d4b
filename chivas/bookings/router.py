from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List

from chivas.auth.dependencies import get_current_user, require_admin
from chivas.bookings.booking_service import BookingService
from chivas.bookings.payment_service import PaymentService
from chivas.bookings.schemas import (
    ReservationCreateRequest, ReservationUpdateRequest, PaymentConfirmationRequest,
    Reservation, ReservationDetail, RefundResult, Ticket
)
from chivas.bookings.state import reservation_status
from chivas.bookings.ticket_service import TicketService
from chivas.database import get_db
from chivas.exceptions import Forbidden
from chivas.models import Reserva, SUBTIPO_ADMIN
from chivas.notifications import BackgroundNotifier, Notifier, build_notifier

router = APIRouter()

def get_notifier(background_tasks: BackgroundTasks) -> Notifier:
    """Notifications go out after the response, never inside the transaction"""
    return BackgroundNotifier(background_tasks, build_notifier())

def _to_detail(db: Session, reservation: Reserva) -> ReservationDetail:
    tickets = TicketService(db).list_reservation_tickets(reservation.id)
    return ReservationDetail(
        **Reservation.model_validate(reservation).model_dump(),
        estado=reservation_status(reservation),
        boletos=[Ticket.model_validate(ticket) for ticket in tickets]
    )

def _owned_reservation(db: Session, reservation_id: int, current_user) -> Reserva:
    reservation = BookingService(db).get_reservation(reservation_id)
    if current_user.subtipo != SUBTIPO_ADMIN and reservation.id_usuario != current_user.id:
        raise Forbidden("Reservation belongs to another user")
    return reservation

# Reservation Lifecycle Endpoints
@router.post("/reservas", response_model=ReservationDetail, status_code=status.HTTP_201_CREATED)
def create_reservation(
    request: ReservationCreateRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Reserve seats on a trip for the current user and any invited guests"""
    reservation = BookingService(db).create_reservation(
        user_id=current_user.id,
        trip_id=request.id_viaje,
        guests=request.invitados
    )
    return _to_detail(db, reservation)

@router.get("/reservas/mine", response_model=List[Reservation])
def list_my_reservations(
    only_active: bool = False,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Reservations made by the current user"""
    return BookingService(db).list_user_reservations(current_user.id, only_active=only_active)

@router.get("/reservas/{reservation_id}", response_model=ReservationDetail)
def get_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Reservation details with its tickets"""
    reservation = _owned_reservation(db, reservation_id, current_user)
    return _to_detail(db, reservation)

@router.put("/reservas/{reservation_id}", response_model=ReservationDetail)
def edit_reservation(
    reservation_id: int,
    request: ReservationUpdateRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Change the number of seats of an unpaid reservation"""
    _owned_reservation(db, reservation_id, current_user)
    reservation = BookingService(db).edit_reservation(reservation_id, request.n_boletas)
    return _to_detail(db, reservation)

@router.post("/reservas/{reservation_id}/cancel", response_model=ReservationDetail)
def cancel_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Cancel an unpaid reservation and release its seats"""
    _owned_reservation(db, reservation_id, current_user)
    reservation = BookingService(db).cancel_reservation(reservation_id)
    return _to_detail(db, reservation)

# Payment Endpoints
@router.post("/reservas/{reservation_id}/pay", response_model=ReservationDetail)
def confirm_payment(
    reservation_id: int,
    request: PaymentConfirmationRequest,
    db: Session = Depends(get_db),
    admin = Depends(require_admin),
    notifier: Notifier = Depends(get_notifier)
):
    """Confirm payment of a reservation (admins only); tickets are emailed to the payer"""
    reservation = PaymentService(db, notifier).confirm_payment(reservation_id, request.metodo_pago)
    return _to_detail(db, reservation)

@router.post("/reservas/{reservation_id}/refund", response_model=RefundResult)
def refund_payment(
    reservation_id: int,
    db: Session = Depends(get_db),
    admin = Depends(require_admin),
    notifier: Notifier = Depends(get_notifier)
):
    """Refund a paid reservation (admins only)"""
    reservation = PaymentService(db, notifier).refund_payment(reservation_id)
    tickets = TicketService(db).list_reservation_tickets(reservation_id)
    return RefundResult(
        reserva_id=reservation.id,
        reembolso=reservation.reembolso,
        tipo_reembolso=reservation.tipo_reembolso,
        boletos_desactivados=len(tickets)
    )

# Ticket Endpoints
@router.get("/reservas/{reservation_id}/boletos", response_model=List[Ticket])
def list_reservation_tickets(
    reservation_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Tickets issued for a reservation"""
    _owned_reservation(db, reservation_id, current_user)
    return TicketService(db).list_reservation_tickets(reservation_id)

@router.get("/boletos/mine", response_model=List[Ticket])
def list_my_tickets(
    only_active: bool = False,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Tickets held by the current user"""
    return TicketService(db).list_user_tickets(current_user.id, only_active=only_active)

@router.get("/viajes/{trip_id}/reservas", response_model=List[Reservation])
def list_trip_reservations(
    trip_id: int,
    db: Session = Depends(get_db),
    admin = Depends(require_admin)
):
    """All reservations on a trip (admins only)"""
    return BookingService(db).list_trip_reservations(trip_id)

@router.get("/boletos/{code}/qr", response_class=Response)
def get_ticket_qr(
    code: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """QR image for a ticket, for the holder, the booker or an admin"""
    ticket_service = TicketService(db)
    ticket = ticket_service.get_ticket_by_code(code)
    if current_user.subtipo != SUBTIPO_ADMIN and current_user.id not in (
        ticket.id_usuario, ticket.reserva.id_usuario
    ):
        raise Forbidden("Ticket belongs to another user")
    return Response(content=ticket_service.generate_qr_png(code), media_type="image/png")

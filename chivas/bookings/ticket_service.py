import logging
import json
import secrets
from io import BytesIO
from typing import List

import qrcode
from qrcode import constants
from sqlalchemy.orm import Session

from chivas.exceptions import NotFound
from chivas.models import Boleto, Reserva, Viaje

logger = logging.getLogger(__name__)

class TicketService:
    """Issues one ticket per seat-holder and tracks its active flag"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def issue_ticket(self, user_id: int, reservation_id: int) -> Boleto:
        """Issue a ticket with a frozen copy of the trip's date and departure time"""
        reservation = self.db.get(Reserva, reservation_id)
        if not reservation:
            raise NotFound(f"Reservation {reservation_id} not found")
        
        trip = self.db.get(Viaje, reservation.id_viaje)
        if not trip:
            raise NotFound(f"Trip {reservation.id_viaje} not found")
        
        ticket = Boleto(
            codigo=self._generate_ticket_code(),
            id_usuario=user_id,
            id_reserva=reservation.id,
            fecha=trip.fecha,
            hora_salida=trip.hora_salida,
            activo=True
        )
        self.db.add(ticket)
        self.db.flush()
        
        logger.debug("Issued ticket %s for user %s on reservation %s", ticket.codigo, user_id, reservation_id)
        return ticket
    
    def set_reservation_tickets_active(self, reservation_id: int, active: bool) -> int:
        """Flip the active flag on every ticket of a reservation, returning how many"""
        tickets = self.list_reservation_tickets(reservation_id)
        for ticket in tickets:
            ticket.activo = active
        self.db.flush()
        return len(tickets)
    
    def list_reservation_tickets(self, reservation_id: int) -> List[Boleto]:
        return self.db.query(Boleto).filter(
            Boleto.id_reserva == reservation_id
        ).order_by(Boleto.id).all()
    
    def list_user_tickets(self, user_id: int, only_active: bool = False) -> List[Boleto]:
        query = self.db.query(Boleto).filter(Boleto.id_usuario == user_id)
        if only_active:
            query = query.filter(Boleto.activo.is_(True))
        return query.order_by(Boleto.fecha.desc(), Boleto.id).all()
    
    def get_ticket_by_code(self, code: str) -> Boleto:
        ticket = self.db.query(Boleto).filter(Boleto.codigo == code).first()
        if not ticket:
            raise NotFound("Ticket not found")
        return ticket

    def generate_qr_png(self, code: str) -> bytes:
        """PNG QR image encoding the ticket code and its frozen schedule"""
        ticket = self.get_ticket_by_code(code)
        payload = json.dumps({
            "v": "1.0",
            "code": ticket.codigo,
            "res": ticket.id_reserva,
            "date": ticket.fecha.isoformat(),
            "dep": ticket.hora_salida.strftime("%H:%M"),
        }, separators=(',', ':'))
        
        qr = qrcode.QRCode(
            version=1,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        
        qr_image = qr.make_image(fill_color="black", back_color="white")
        buffer = BytesIO()
        qr_image.save(buffer, format="PNG")
        return buffer.getvalue()

    def _generate_ticket_code(self) -> str:
        """Short human-typeable code, e.g. CHV-9F2A61C4B0"""
        return f"CHV-{secrets.token_hex(5).upper()}"

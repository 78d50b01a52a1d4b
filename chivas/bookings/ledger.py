import logging

from sqlalchemy import func, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from chivas.exceptions import CapacityExceeded, NotFound
from chivas.models import Reserva, Viaje

logger = logging.getLogger(__name__)

class CapacityLedger:
    """Single writer of ``Viaje.cupo``.

    Seats are consumed or released with one conditional UPDATE, so two
    transactions that both read the same stale ``cupo`` cannot both take the
    last seats: the database re-evaluates the guard on the row it updates.
    """
    
    def __init__(self, db: Session):
        self.db = db
    
    def apply_seat_delta(self, trip_id: int, delta: int) -> None:
        """Consume ``delta`` seats (negative releases them) inside the caller's transaction"""
        if delta == 0:
            if not self._trip_exists(trip_id):
                raise NotFound(f"Trip {trip_id} not found")
            return
        
        new_cupo = Viaje.cupo - delta
        stmt = (
            update(Viaje)
            .where(Viaje.id == trip_id)
            .where(new_cupo >= 0)
            .where(new_cupo <= Viaje.capacidad)
            .values(cupo=new_cupo)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        
        if result.rowcount == 0:
            if not self._trip_exists(trip_id):
                raise NotFound(f"Trip {trip_id} not found")
            logger.warning("Seat delta %s rejected for trip %s", delta, trip_id)
            if delta > 0:
                raise CapacityExceeded(f"Trip {trip_id} does not have {delta} seats available")
            raise CapacityExceeded(f"Releasing {-delta} seats would exceed the capacity of trip {trip_id}")
        
        # Loaded instances must not keep serving the pre-update value
        cached = self.db.identity_map.get(identity_key(Viaje, trip_id))
        if cached is not None:
            self.db.expire(cached, ["cupo"])
        
        logger.debug("Applied seat delta %s to trip %s", delta, trip_id)
    
    def available_seats(self, trip_id: int) -> int:
        """Current ``cupo`` read straight from the table"""
        cupo = self.db.query(Viaje.cupo).filter(Viaje.id == trip_id).scalar()
        if cupo is None:
            raise NotFound(f"Trip {trip_id} not found")
        return cupo
    
    def held_seats(self, trip_id: int) -> int:
        """Seats held by active reservations on the trip"""
        return self.db.query(func.coalesce(func.sum(Reserva.n_boletas), 0)).filter(
            Reserva.id_viaje == trip_id,
            Reserva.vigente.is_(True)
        ).scalar()
    
    def _trip_exists(self, trip_id: int) -> bool:
        return self.db.query(Viaje.id).filter(Viaje.id == trip_id).first() is not None

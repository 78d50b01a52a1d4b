import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from chivas import validation
from chivas.bookings.ledger import CapacityLedger
from chivas.catalog.schemas import DestinationCreate, TripCreate, TripUpdate
from chivas.database import unit_of_work
from chivas.exceptions import AlreadyCancelled, ConstraintViolation, NotFound
from chivas.models import Destino, Viaje

logger = logging.getLogger(__name__)

# Trip columns a partial update may not clear
NON_NULLABLE_TRIP_FIELDS = ("origen", "fecha", "hora_salida", "precio", "incluye_comida", "capacidad")

class CatalogService:
    """Destinations and the trips scheduled to them"""
    
    def __init__(self, db: Session):
        self.db = db
        self.ledger = CapacityLedger(db)
    
    # Destinations
    def create_destination(self, data: DestinationCreate, admin_id: Optional[int] = None) -> Destino:
        destination = Destino(nombre=data.nombre, descripcion=data.descripcion, creado_por=admin_id)
        try:
            with unit_of_work(self.db):
                self.db.add(destination)
                self.db.flush()
        except IntegrityError:
            raise ConstraintViolation(f"Destination '{data.nombre}' already exists")
        
        self.db.refresh(destination)
        logger.info("Destination %s created: %s", destination.id, destination.nombre)
        return destination
    
    def get_destination(self, destination_id: int) -> Destino:
        destination = self.db.get(Destino, destination_id)
        if not destination:
            raise NotFound(f"Destination {destination_id} not found")
        return destination
    
    def list_destinations(self) -> List[Destino]:
        return self.db.query(Destino).order_by(Destino.nombre).all()
    
    # Trips
    def create_trip(self, data: TripCreate) -> Viaje:
        with unit_of_work(self.db):
            self.get_destination(data.destino_id)
            trip = Viaje(
                destino_id=data.destino_id,
                origen=data.origen,
                fecha=data.fecha,
                hora_salida=data.hora_salida,
                hora_regreso=data.hora_regreso,
                capacidad=data.capacidad,
                cupo=data.capacidad,
                precio=data.precio,
                incluye_comida=data.incluye_comida,
                cancelado=False
            )
            self.db.add(trip)
            self.db.flush()
        
        self.db.refresh(trip)
        logger.info("Trip %s created to destination %s with %s seats", trip.id, trip.destino_id, trip.capacidad)
        return trip
    
    def update_trip(self, trip_id: int, data: TripUpdate) -> Viaje:
        """Edit a trip. Capacity changes move ``cupo`` by the same amount.

        Already issued tickets keep their own copy of the schedule.
        """
        update_data = data.dict(exclude_unset=True)
        validation.reject_nulls(update_data, NON_NULLABLE_TRIP_FIELDS)
        new_capacity = update_data.pop("capacidad", None)
        
        with unit_of_work(self.db):
            trip = self.get_trip(trip_id)
            if trip.cancelado:
                raise AlreadyCancelled(f"Trip {trip_id} is cancelled")
            
            for field, value in update_data.items():
                setattr(trip, field, value)
            
            if new_capacity is not None and new_capacity != trip.capacidad:
                old_capacity = trip.capacidad
                if new_capacity > old_capacity:
                    trip.capacidad = new_capacity
                    self.db.flush()
                    self.ledger.apply_seat_delta(trip_id, old_capacity - new_capacity)
                else:
                    self.db.flush()
                    self.ledger.apply_seat_delta(trip_id, old_capacity - new_capacity)
                    trip.capacidad = new_capacity
                logger.info("Trip %s capacity %s -> %s", trip_id, old_capacity, new_capacity)
            
            self.db.flush()
        
        self.db.refresh(trip)
        return trip
    
    def cancel_trip(self, trip_id: int) -> Viaje:
        """Close a trip to new reservations; existing ones are settled individually"""
        with unit_of_work(self.db):
            trip = self.get_trip(trip_id)
            if trip.cancelado:
                raise AlreadyCancelled(f"Trip {trip_id} is already cancelled")
            trip.cancelado = True
        
        logger.info("Trip %s cancelled", trip_id)
        self.db.refresh(trip)
        return trip
    
    def get_trip(self, trip_id: int) -> Viaje:
        trip = self.db.get(Viaje, trip_id)
        if not trip:
            raise NotFound(f"Trip {trip_id} not found")
        return trip
    
    def list_trips(
        self,
        skip: int = 0,
        limit: int = 50,
        destination_id: Optional[int] = None,
        include_cancelled: bool = False
    ) -> Tuple[List[Viaje], int]:
        query = self.db.query(Viaje).options(joinedload(Viaje.destino))
        
        if destination_id:
            query = query.filter(Viaje.destino_id == destination_id)
        if not include_cancelled:
            query = query.filter(Viaje.cancelado.is_(False))
        
        total = query.count()
        trips = query.order_by(Viaje.fecha, Viaje.hora_salida).offset(skip).limit(limit).all()
        
        return trips, total

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from chivas.database import get_db
from chivas.auth.dependencies import require_admin
from chivas.catalog.schemas import (
    DestinationCreate, Destination, TripCreate, TripUpdate, Trip, TripSearchResult
)
from chivas.catalog.service import CatalogService

router = APIRouter()

# Destinations
@router.get("/destinos", response_model=List[Destination])
def list_destinations(db: Session = Depends(get_db)):
    """List all destinations"""
    return CatalogService(db).list_destinations()

@router.get("/destinos/{destination_id}", response_model=Destination)
def get_destination(destination_id: int, db: Session = Depends(get_db)):
    """Get destination details"""
    return CatalogService(db).get_destination(destination_id)

@router.post("/destinos", response_model=Destination, status_code=status.HTTP_201_CREATED)
def create_destination(
    data: DestinationCreate,
    db: Session = Depends(get_db),
    admin = Depends(require_admin)
):
    """Create a destination (admins only)"""
    return CatalogService(db).create_destination(data, admin_id=admin.id)

# Trips
@router.get("/viajes", response_model=TripSearchResult)
def list_trips(
    skip: int = Query(0, ge=0, description="Number of trips to skip"),
    limit: int = Query(50, ge=1, le=100, description="Number of trips to return"),
    destino_id: Optional[int] = Query(None, description="Filter by destination"),
    include_cancelled: bool = Query(False, description="Include cancelled trips"),
    db: Session = Depends(get_db)
):
    """List scheduled trips"""
    trips, total = CatalogService(db).list_trips(
        skip=skip, limit=limit, destination_id=destino_id, include_cancelled=include_cancelled
    )
    
    return TripSearchResult(
        trips=[Trip.model_validate(trip) for trip in trips],
        total=total,
        page=(skip // limit) + 1,
        per_page=limit
    )

@router.get("/viajes/{trip_id}", response_model=Trip)
def get_trip(trip_id: int, db: Session = Depends(get_db)):
    """Get trip details including remaining seats"""
    return CatalogService(db).get_trip(trip_id)

@router.post("/viajes", response_model=Trip, status_code=status.HTTP_201_CREATED)
def create_trip(
    data: TripCreate,
    db: Session = Depends(get_db),
    admin = Depends(require_admin)
):
    """Schedule a new trip (admins only)"""
    return CatalogService(db).create_trip(data)

@router.put("/viajes/{trip_id}", response_model=Trip)
def update_trip(
    trip_id: int,
    data: TripUpdate,
    db: Session = Depends(get_db),
    admin = Depends(require_admin)
):
    """Edit a trip (admins only)"""
    return CatalogService(db).update_trip(trip_id, data)

@router.post("/viajes/{trip_id}/cancel", response_model=Trip)
def cancel_trip(
    trip_id: int,
    db: Session = Depends(get_db),
    admin = Depends(require_admin)
):
    """Cancel a trip (admins only)"""
    return CatalogService(db).cancel_trip(trip_id)

#!/usr/bin/env python3
"""
Seed Data Script

Creates the first administrator plus sample destinations and trips for the
chiva booking backend.

Usage:
    python seed_data.py
"""

import os
from datetime import date, time, timedelta
from decimal import Decimal

from chivas.auth.utils import get_password_hash
from chivas.database import Base, SessionLocal, engine
from chivas.models import Destino, Usuario, Viaje, Reserva, Boleto, Invitacion, Opinion, SUBTIPO_ADMIN

ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@chivas.com.co")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "Admin123!")

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    
    try:
        print("🚌 Creating seed data for the chiva booking system...")
        
        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Opinion).delete()
        db.query(Boleto).delete()
        db.query(Reserva).delete()
        db.query(Invitacion).delete()
        db.query(Viaje).delete()
        db.query(Destino).delete()
        db.query(Usuario).delete()
        
        # 1. Administrator
        print("Creating administrator...")
        admin = Usuario(
            correo=ADMIN_EMAIL,
            documento="10000000",
            nombre="Administrador Chivas",
            fecha_nacimiento=date(1990, 1, 1),
            subtipo=SUBTIPO_ADMIN,
            password_hash=get_password_hash(ADMIN_PASSWORD)
        )
        db.add(admin)
        db.flush()
        
        # 2. Destinations
        print("Creating destinations...")
        destinations = [
            Destino(nombre="Guatapé", descripcion="Piedra del Peñol y el embalse", creado_por=admin.id),
            Destino(nombre="Santa Fe de Antioquia", descripcion="Pueblo colonial y Puente de Occidente", creado_por=admin.id),
            Destino(nombre="Jardín", descripcion="Cafetales y cascadas", creado_por=admin.id),
        ]
        db.add_all(destinations)
        db.flush()
        
        # 3. Trips over the next weeks
        print("Creating trips...")
        trips = []
        today = date.today()
        for week, destination in enumerate(destinations, start=1):
            for offset in (0, 7):
                trips.append(Viaje(
                    destino_id=destination.id,
                    origen="Medellín",
                    fecha=today + timedelta(days=week * 7 + offset),
                    hora_salida=time(6, 30),
                    hora_regreso=time(19, 0),
                    capacidad=40,
                    cupo=40,
                    precio=Decimal("85000"),
                    incluye_comida=True,
                    cancelado=False
                ))
        db.add_all(trips)
        
        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data!")
        print(f"Created:")
        print(f"  - 1 administrator ({ADMIN_EMAIL})")
        print(f"  - {len(destinations)} destinations")
        print(f"  - {len(trips)} trips")
        
    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()

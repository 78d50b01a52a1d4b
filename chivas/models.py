from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Time, Text, ForeignKey, Numeric, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from chivas.database import Base

# Account subtypes
SUBTIPO_CLIENTE = "C"
SUBTIPO_INVITADO = "I"
SUBTIPO_ADMIN = "A"

# Refund kinds
REEMBOLSO_NINGUNO = "ninguno"
REEMBOLSO_PARCIAL = "parcial"
REEMBOLSO_TOTAL = "total"

# ================================
# Users
# ================================
class Usuario(Base):
    __tablename__ = "usuario"
    
    id = Column(Integer, primary_key=True, index=True)
    correo = Column(String(255), nullable=False, index=True)
    documento = Column(String(30), nullable=False)
    nombre = Column(String(255), nullable=False)
    contacto = Column(String(30))
    fecha_nacimiento = Column(Date)
    subtipo = Column(String(1), nullable=False, default=SUBTIPO_CLIENTE)
    password_hash = Column(String(255))
    creado_en = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    reservas = relationship("Reserva", back_populates="usuario")
    boletos = relationship("Boleto", back_populates="usuario")
    opiniones = relationship("Opinion", back_populates="usuario")
    
    __table_args__ = (
        UniqueConstraint("correo", "subtipo", name="uq_usuario_correo_subtipo"),
    )

class Invitacion(Base):
    __tablename__ = "invitacion"
    
    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuario.id"), nullable=False, index=True)
    id_invitado = Column(Integer, ForeignKey("usuario.id"), nullable=False, index=True)
    creado_en = Column(DateTime(timezone=True), server_default=func.now())
    
    __table_args__ = (
        UniqueConstraint("id_usuario", "id_invitado", name="uq_invitacion_par"),
    )

# ================================
# Catalog
# ================================
class Destino(Base):
    __tablename__ = "destino"
    
    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(255), unique=True, nullable=False, index=True)
    descripcion = Column(Text)
    creado_por = Column(Integer, ForeignKey("usuario.id"))
    creado_en = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    viajes = relationship("Viaje", back_populates="destino")
    opiniones = relationship("Opinion", back_populates="destino")

class Viaje(Base):
    __tablename__ = "viaje"
    
    id = Column(Integer, primary_key=True, index=True)
    destino_id = Column(Integer, ForeignKey("destino.id"), nullable=False, index=True)
    origen = Column(String(255), nullable=False)
    fecha = Column(Date, nullable=False, index=True)
    hora_salida = Column(Time, nullable=False)
    hora_regreso = Column(Time)
    capacidad = Column(Integer, nullable=False)
    cupo = Column(Integer, nullable=False)
    precio = Column(Numeric(12, 2), nullable=False)
    incluye_comida = Column(Boolean, default=False)
    cancelado = Column(Boolean, default=False, index=True)
    creado_en = Column(DateTime(timezone=True), server_default=func.now())
    actualizado_en = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    destino = relationship("Destino", back_populates="viajes")
    reservas = relationship("Reserva", back_populates="viaje")
    
    @property
    def destino_nombre(self):
        return self.destino.nombre if self.destino else None
    
    __table_args__ = (
        CheckConstraint("cupo >= 0", name="check_viaje_cupo_no_negativo"),
        CheckConstraint("cupo <= capacidad", name="check_viaje_cupo_capacidad"),
    )

# ================================
# Reservations & Tickets
# ================================
class Reserva(Base):
    __tablename__ = "reserva"
    
    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuario.id"), nullable=False, index=True)
    id_viaje = Column(Integer, ForeignKey("viaje.id"), nullable=False, index=True)
    n_boletas = Column(Integer, nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    vigente = Column(Boolean, default=True, nullable=False)
    pagado = Column(Boolean, default=False, nullable=False)
    reembolso = Column(Numeric(12, 2), default=0, nullable=False)
    tipo_reembolso = Column(String(10), default=REEMBOLSO_NINGUNO, nullable=False)
    metodo_pago = Column(String(50))
    creado_en = Column(DateTime(timezone=True), server_default=func.now())
    actualizado_en = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    usuario = relationship("Usuario", back_populates="reservas")
    viaje = relationship("Viaje", back_populates="reservas")
    boletos = relationship("Boleto", back_populates="reserva", order_by="Boleto.id")
    
    __table_args__ = (
        UniqueConstraint("id_usuario", "id_viaje", name="uq_reserva_usuario_viaje"),
        CheckConstraint("n_boletas > 0", name="check_reserva_n_boletas_positivo"),
    )

class Boleto(Base):
    __tablename__ = "boleto"
    
    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String(32), unique=True, nullable=False, index=True)
    id_usuario = Column(Integer, ForeignKey("usuario.id"), nullable=False, index=True)
    id_reserva = Column(Integer, ForeignKey("reserva.id"), nullable=False, index=True)
    fecha = Column(Date, nullable=False)
    hora_salida = Column(Time, nullable=False)
    activo = Column(Boolean, default=True, nullable=False)
    creado_en = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    usuario = relationship("Usuario", back_populates="boletos")
    reserva = relationship("Reserva", back_populates="boletos")

# ================================
# Reviews
# ================================
class Opinion(Base):
    __tablename__ = "opinion"
    
    id = Column(Integer, primary_key=True, index=True)
    id_usuario = Column(Integer, ForeignKey("usuario.id"), nullable=False, index=True)
    id_destino = Column(Integer, ForeignKey("destino.id"), nullable=False, index=True)
    calificacion = Column(Integer, nullable=False)
    comentario = Column(Text)
    creado_en = Column(DateTime(timezone=True), server_default=func.now())
    actualizado_en = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    usuario = relationship("Usuario", back_populates="opiniones")
    destino = relationship("Destino", back_populates="opiniones")
    
    __table_args__ = (
        CheckConstraint("calificacion BETWEEN 1 AND 5", name="check_opinion_calificacion"),
    )

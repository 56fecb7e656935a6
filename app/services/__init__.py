"""
Servicios de JabClub.

Cada módulo implementa la lógica de negocio de un área del club y expone
una instancia única del servicio. Los servicios trabajan con los
repositorios y confirman la transacción al terminar cada operación.
"""

from app.services.auth import auth_service
from app.services.user import user_service
from app.services.credit import credit_service
from app.services.booking import booking_service
from app.services.payment import payment_service

__all__ = [
    "auth_service",
    "user_service",
    "credit_service",
    "booking_service",
    "payment_service",
]

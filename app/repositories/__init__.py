# Inicializador del paquete repositories
from app.repositories.base import BaseRepository

from app.repositories.user import user_repository, child_repository
from app.repositories.location import location_repository
from app.repositories.package import (
    package_repository,
    location_price_repository,
    member_price_repository,
    member_package_repository,
)
from app.repositories.payment import payment_repository
from app.repositories.schedule import (
    class_type_repository,
    class_schedule_repository,
    class_instance_repository,
)
from app.repositories.booking import booking_repository, class_note_repository
from app.repositories.credit import credit_transaction_repository

__all__ = [
    "BaseRepository",
    "user_repository",
    "child_repository",
    "location_repository",
    "package_repository",
    "location_price_repository",
    "member_price_repository",
    "member_package_repository",
    "payment_repository",
    "class_type_repository",
    "class_schedule_repository",
    "class_instance_repository",
    "booking_repository",
    "class_note_repository",
    "credit_transaction_repository",
]

# Importar todos los modelos para que Base.metadata los conozca (create_all / tests)
from app.db.base_class import Base  # noqa
from app.models.user import User, Child  # noqa
from app.models.location import Location  # noqa
from app.models.package import (  # noqa
    SessionPackage,
    MemberPackage,
    LocationPackagePrice,
    MemberPackagePrice,
)
from app.models.payment import Payment  # noqa
from app.models.schedule import ClassType, ClassSchedule, ClassInstance  # noqa
from app.models.booking import Booking, ClassNote  # noqa
from app.models.credit import CreditTransaction  # noqa

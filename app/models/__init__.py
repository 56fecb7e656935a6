from app.models.user import User, UserRole, Child
from app.models.location import Location
from app.models.package import SessionPackage, MemberPackage, LocationPackagePrice, MemberPackagePrice
from app.models.payment import Payment, PaymentStatus
from app.models.schedule import ClassType, ClassSchedule, ClassInstance, DayOfWeek, DAY_NAMES
from app.models.booking import Booking, BookingStatus, ClassNote
from app.models.credit import CreditTransaction, CreditTransactionType

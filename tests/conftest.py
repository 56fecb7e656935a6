import os
import tempfile

# Configuración de pruebas: debe aplicarse antes de importar la app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "False"
os.environ["SCHEDULER_ENABLED"] = "False"
os.environ["DEBUG_MODE"] = "False"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["QR_SECRET"] = "test-qr-secret"
os.environ["CLUB_TIMEZONE"] = "Africa/Cairo"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="jabclub-uploads-")

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event

from app.core.security import create_access_token, get_password_hash
from app.db.base import Base
from app.db.session import SessionLocal, engine, get_db
from app.db.types import utcnow
from app.main import app
from app.models.booking import Booking, BookingStatus
from app.models.location import Location
from app.models.package import MemberPackage, SessionPackage
from app.models.schedule import ClassInstance, ClassType
from app.models.user import Child, User, UserRole


# pysqlite no emite BEGIN por sí mismo; sin esto los SAVEPOINT no funcionan
@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session")
def db_engine():
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_engine):
    """
    Sesión por test dentro de una transacción que se deshace al final.

    Los commit de los servicios se convierten en SAVEPOINT, así cada test
    empieza con la base vacía.
    """
    connection = db_engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def client(db):
    """Cliente de prueba con get_db apuntando a la sesión del test (sin lifespan)"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# Usuarios

def _create_user(db, email, role, first_name, last_name, password="password123"):
    user = User(
        email=email,
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db):
    return _create_user(db, "admin@test.com", UserRole.ADMIN, "Ada", "Admin")


@pytest.fixture
def coach_user(db):
    return _create_user(db, "coach@test.com", UserRole.COACH, "Carl", "Coach")


@pytest.fixture
def other_coach(db):
    return _create_user(db, "coach2@test.com", UserRole.COACH, "Cora", "Coach")


@pytest.fixture
def member_user(db):
    return _create_user(db, "member@test.com", UserRole.MEMBER, "Mia", "Member")


@pytest.fixture
def other_member(db):
    return _create_user(db, "member2@test.com", UserRole.MEMBER, "Max", "Member")


@pytest.fixture
def child(db, member_user):
    kid = Child(parent_id=member_user.id, first_name="Kim", last_name="Member", age=9)
    db.add(kid)
    db.commit()
    db.refresh(kid)
    return kid


def _headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def coach_headers(coach_user):
    return _headers(coach_user)


@pytest.fixture
def other_coach_headers(other_coach):
    return _headers(other_coach)


@pytest.fixture
def member_headers(member_user):
    return _headers(member_user)


@pytest.fixture
def other_member_headers(other_member):
    return _headers(other_member)


# Catálogo y clases

@pytest.fixture
def location(db):
    loc = Location(name="Downtown", address="1 Main St", capacity=30)
    db.add(loc)
    db.commit()
    db.refresh(loc)
    return loc


@pytest.fixture
def class_type(db):
    ct = ClassType(name="Boxing", description="Bag work", duration_minutes=60)
    db.add(ct)
    db.commit()
    db.refresh(ct)
    return ct


@pytest.fixture
def package(db):
    pkg = SessionPackage(name="10 Sessions", session_count=10, price=Decimal("1000.00"), expiry_days=30)
    db.add(pkg)
    db.commit()
    db.refresh(pkg)
    return pkg


@pytest.fixture
def make_class(db, class_type, coach_user, location):
    """Fábrica de clases: make_class(hours_from_now=24, capacity=10, coach=None)"""
    def _make(hours_from_now=24, capacity=10, coach=None, is_cancelled=False):
        start = utcnow().replace(microsecond=0) + timedelta(hours=hours_from_now)
        instance = ClassInstance(
            class_type_id=class_type.id,
            coach_id=(coach or coach_user).id,
            location_id=location.id,
            start_time=start,
            end_time=start + timedelta(minutes=class_type.duration_minutes),
            capacity=capacity,
            is_cancelled=is_cancelled,
        )
        db.add(instance)
        db.commit()
        db.refresh(instance)
        return instance
    return _make


@pytest.fixture
def upcoming_class(make_class):
    return make_class(hours_from_now=24)


@pytest.fixture
def make_member_package(db, package):
    """Fábrica de paquetes de miembro: make_member_package(user, credits=5, days=30)"""
    def _make(user, credits=5, days=30, is_expired=False):
        member_package = MemberPackage(
            user_id=user.id,
            package_id=package.id,
            sessions_remaining=credits,
            sessions_total=max(credits, 1),
            expiry_date=utcnow() + timedelta(days=days),
            is_expired=is_expired,
        )
        db.add(member_package)
        db.commit()
        db.refresh(member_package)
        return member_package
    return _make


@pytest.fixture
def member_package(make_member_package, member_user):
    return make_member_package(member_user, credits=5)


@pytest.fixture
def make_booking(db):
    """Reserva directa en base de datos, sin pasar por el libro de créditos"""
    def _make(instance, user, member_package, status=BookingStatus.CONFIRMED, child=None):
        booking = Booking(
            class_instance_id=instance.id,
            user_id=user.id,
            child_id=child.id if child else None,
            member_package_id=member_package.id,
            status=status,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking
    return _make

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings_instance = get_settings()
db_url = settings_instance.DATABASE_URL

# Ocultar credenciales en el log
display_url = db_url
if '@' in display_url:
    scheme = display_url.split('://')[0]
    display_url = f"{scheme}://***@{display_url.split('@', 1)[1]}"

if db_url.startswith("sqlite"):
    engine_kwargs = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in db_url:
        # Una sola conexión compartida; cada conexión nueva sería otra base vacía
        engine_kwargs["poolclass"] = StaticPool
    engine = create_engine(db_url, echo=False, **engine_kwargs)
else:
    engine = create_engine(
        db_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=180,
    )

logger.info(f"Engine creado para: {display_url}")

# Crear clase de sesión
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependencia para obtener la sesión de DB
def get_db():
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Error de SQLAlchemy en la sesión: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()

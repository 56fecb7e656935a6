from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import OperationalError, DBAPIError
from functools import wraps
import logging
import time

from app.core.config import get_settings
from app.core.timezone_utils import club_today, get_club_timezone
from app.db.session import SessionLocal
from app.services import expiry
from app.services.schedule_generator import generate_classes_from_schedules

logger = logging.getLogger(__name__)

# Variable global para mantener referencia al scheduler
_scheduler = None


def retry_on_db_error(max_retries=3, delay=2):
    """
    Decorator para reintentar operaciones en caso de errores de BD.

    Útil para tareas programadas que pueden fallar por conexiones cerradas
    o timeouts transitorios.

    Args:
        max_retries: Número máximo de reintentos (default: 3)
        delay: Tiempo base de espera entre reintentos en segundos (default: 2)
               Se aplica backoff lineal: delay * (attempt + 1)
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except (OperationalError, DBAPIError) as e:
                    if attempt < max_retries - 1:
                        wait_time = delay * (attempt + 1)
                        logger.warning(
                            f"DB error in {func.__name__}, retry {attempt + 1}/{max_retries} "
                            f"after {wait_time}s: {str(e)}"
                        )
                        time.sleep(wait_time)
                    else:
                        logger.error(
                            f"Max retries ({max_retries}) reached for {func.__name__}: {str(e)}",
                            exc_info=True
                        )
                        raise
        return wrapper
    return decorator


def _run_job(name, job):
    """Ejecuta `job(db)` con una sesión propia; los errores de BD se propagan para el reintento"""
    logger.info(f"Running scheduled task: {name}")
    db = SessionLocal()
    try:
        result = job(db)
        logger.info(f"Scheduled task {name} finished: {result}")
        return result
    except (OperationalError, DBAPIError):
        db.rollback()
        raise
    except Exception as e:
        logger.error(f"Error in {name} task: {str(e)}", exc_info=True)
        db.rollback()
    finally:
        db.close()


@retry_on_db_error(max_retries=3, delay=2)
def expire_packages_job():
    """Caduca los paquetes vencidos y deja constancia en el libro de créditos"""
    return _run_job("expire_packages", expiry.check_expired_packages)


@retry_on_db_error(max_retries=3, delay=2)
def expiry_warnings_job():
    return _run_job("expiry_warnings", expiry.check_expiring_packages)


@retry_on_db_error(max_retries=3, delay=2)
def renewal_reminders_job():
    return _run_job("renewal_reminders", expiry.check_renewal_reminders)


@retry_on_db_error(max_retries=3, delay=2)
def generate_classes_job():
    """
    Genera las clases de los horarios activos para los próximos meses.

    La generación es idempotente: las clases que ya existen no se duplican,
    así que la ejecución semanal solo rellena huecos.
    """
    months = get_settings().SCHEDULE_MONTHS_AHEAD
    return _run_job(
        "generate_classes",
        lambda db: generate_classes_from_schedules(db, months_ahead=months, from_date=club_today()),
    )


def init_scheduler():
    """
    Inicializa el scheduler con las tareas del club.

    Las horas de los triggers son horas locales del club.
    """
    global _scheduler

    if _scheduler is not None:
        return _scheduler

    _scheduler = AsyncIOScheduler(timezone=get_club_timezone())

    # Caducidad de paquetes a medianoche
    _scheduler.add_job(
        expire_packages_job,
        trigger=CronTrigger(hour=0, minute=0),
        id='expire_packages',
        replace_existing=True
    )

    # Avisos de caducidad a las 09:00
    _scheduler.add_job(
        expiry_warnings_job,
        trigger=CronTrigger(hour=9, minute=0),
        id='expiry_warnings',
        replace_existing=True
    )

    # Recordatorios de renovación a las 10:00
    _scheduler.add_job(
        renewal_reminders_job,
        trigger=CronTrigger(hour=10, minute=0),
        id='renewal_reminders',
        replace_existing=True
    )

    # Generación mensual el día 1 a las 00:30
    _scheduler.add_job(
        generate_classes_job,
        trigger=CronTrigger(day=1, hour=0, minute=30),
        id='generate_classes_monthly',
        replace_existing=True
    )

    # Pasada semanal de seguridad (domingo 01:00)
    _scheduler.add_job(
        generate_classes_job,
        trigger=CronTrigger(day_of_week='sun', hour=1, minute=0),
        id='generate_classes_weekly',
        replace_existing=True
    )

    logger.info("Scheduler initialized with package expiry, reminder and class generation jobs")
    return _scheduler


# Función para obtener el scheduler (útil para pruebas y otros módulos)
def get_scheduler():
    global _scheduler
    return _scheduler

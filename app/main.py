import time
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

# Importar la función de configuración de logging
from app.core.logging_config import setup_logging

# Llamar a la configuración de logging ANTES de importar/crear otros elementos
setup_logging()

# Ahora importar el resto
from app.api.v1.api import api_router
from app.core.config import get_settings
from app.core.scheduler import init_scheduler
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from app.services.auth import auth_service
from slowapi.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

# Obtener la instancia de configuración al inicio del módulo
settings_instance = get_settings()


def init_db() -> None:
    """Crea las tablas que falten y el administrador inicial si está configurado"""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        auth_service.ensure_first_admin(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Lifespan: Startup iniciado...")

    init_db()
    logger.info("Lifespan: Base de datos lista.")

    # Iniciar el scheduler
    if settings_instance.SCHEDULER_ENABLED:
        try:
            scheduler = init_scheduler()
            scheduler.start()
            app.state.scheduler = scheduler
            logger.info("Lifespan: Scheduler inicializado.")
        except Exception as e:
            logger.error(f"Lifespan: Error al inicializar scheduler: {e}", exc_info=True)

    yield  # Aplicación en ejecución

    logger.info("Lifespan: Shutdown iniciado...")

    # Apagar el scheduler
    if getattr(app.state, "scheduler", None):
        try:
            app.state.scheduler.shutdown()
            logger.info("Scheduler shut down.")
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}", exc_info=True)


app = FastAPI(
    title=settings_instance.PROJECT_NAME,
    description=settings_instance.PROJECT_DESCRIPTION,
    version=settings_instance.VERSION,
    openapi_url=f"{settings_instance.API_V1_STR}/openapi.json",
    docs_url=f"{settings_instance.API_V1_STR}/docs",
    redoc_url=f"{settings_instance.API_V1_STR}/redoc",
    lifespan=lifespan,
)

# Configurar rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Middleware: Recibida petición: {request.method} {request.url}")
    if settings_instance.DEBUG_MODE:
        # Sanitizar headers antes de loguear para evitar fuga de secretos
        headers_dict = dict(request.headers)
        auth_header = headers_dict.get("authorization")
        if auth_header:
            if auth_header.startswith("Bearer "):
                token = auth_header[7:]
                headers_dict["authorization"] = f"Bearer ****{token[-6:]}" if len(token) > 6 else "Bearer ****"
            else:
                headers_dict["authorization"] = "***masked***"
        if "cookie" in headers_dict:
            headers_dict["cookie"] = "***masked***"
        logger.debug(f"Middleware: Headers: {headers_dict}")

    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    logger.info(f"Middleware: Enviando respuesta: {response.status_code} ({process_time * 1000:.1f} ms)")
    return response


# Lista de orígenes permitidos para CORS
origins = [str(origin).rstrip("/") for origin in settings_instance.BACKEND_CORS_ORIGINS] or [
    settings_instance.FRONTEND_URL
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=86400,  # 24 horas en segundos
)

# Incluir routers
app.include_router(api_router, prefix=settings_instance.API_V1_STR)


# Ruta raíz
@app.get("/")
def root():
    return {
        "message": "JabClub API",
        "docs": f"{settings_instance.API_V1_STR}/docs",
    }


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings_instance.DEBUG_MODE)

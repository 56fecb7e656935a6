import os
import re
import uuid
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import UploadFile

from app.core.config import get_settings
from app.core.exceptions import FileUploadException

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".heic", ".heif"}
ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/heic",
    "image/heif",
    "application/octet-stream",  # algunos móviles envían HEIC sin tipo
}


class StorageService:
    """
    Almacenamiento local de comprobantes de pago bajo UPLOAD_DIR/payments/YYYY/MM/.
    """

    def __init__(self, base_dir: Optional[str] = None):
        self._base_dir = base_dir

    @property
    def base_dir(self) -> str:
        return self._base_dir or get_settings().UPLOAD_DIR

    def _sanitize_filename(self, filename: str) -> str:
        """
        Sanitiza un nombre de archivo eliminando separadores y caracteres no válidos
        """
        sanitized = re.sub(r'[\\/:*?"<>|]', '_', filename)
        sanitized = re.sub(r'[^\w\-_.]', '_', sanitized)
        return sanitized

    def _validate(self, file: Optional[UploadFile], size: int) -> str:
        if file is None or not file.filename:
            raise FileUploadException("Payment screenshot is required", code="FILE_REQUIRED")

        extension = os.path.splitext(file.filename)[1].lower()
        if extension not in ALLOWED_EXTENSIONS or (
            file.content_type and file.content_type.lower() not in ALLOWED_CONTENT_TYPES
        ):
            logger.warning(f"Tipo de archivo no válido: {file.filename} ({file.content_type})")
            raise FileUploadException(
                "Only JPG, PNG and HEIC images are allowed",
                code="INVALID_FILE_TYPE",
                details={"allowed": sorted(ALLOWED_EXTENSIONS)},
            )

        max_size = get_settings().MAX_UPLOAD_SIZE
        if size > max_size:
            raise FileUploadException(
                f"File exceeds the maximum size of {max_size // (1024 * 1024)}MB",
                code="FILE_TOO_LARGE",
                details={"max_bytes": max_size, "size": size},
            )
        if size == 0:
            raise FileUploadException("Uploaded file is empty", code="FILE_REQUIRED")
        return extension

    async def save_payment_screenshot(self, file: Optional[UploadFile], user_id: int) -> str:
        """
        Valida y guarda un comprobante de pago.

        Args:
            file: Archivo subido (jpg, jpeg, png, heic, heif)
            user_id: Miembro que sube el comprobante

        Returns:
            str: Ruta relativa a UPLOAD_DIR con separadores "/"

        Raises:
            FileUploadException: FILE_REQUIRED, INVALID_FILE_TYPE o FILE_TOO_LARGE
        """
        contents = await file.read() if file is not None else b""
        extension = self._validate(file, len(contents))

        now = datetime.now(timezone.utc)
        relative_dir = f"payments/{now:%Y}/{now:%m}"
        stem = self._sanitize_filename(os.path.splitext(file.filename)[0])[:40]
        filename = f"{user_id}_{uuid.uuid4().hex}_{stem}{extension}"

        target_dir = os.path.join(self.base_dir, *relative_dir.split("/"))
        os.makedirs(target_dir, exist_ok=True)
        with open(os.path.join(target_dir, filename), "wb") as fh:
            fh.write(contents)

        relative_path = f"{relative_dir}/{filename}"
        logger.info(f"Comprobante guardado: {relative_path} ({len(contents)} bytes)")
        return relative_path

    def delete_file(self, relative_path: str) -> bool:
        full_path = os.path.join(self.base_dir, *relative_path.split("/"))
        try:
            os.remove(full_path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"No se pudo eliminar {full_path}: {e}")
            return False


storage_service = StorageService()

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.base_class import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        """
        Repository con operaciones CRUD por defecto.
        """
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """
        Obtener un objeto por su ID.

        Args:
            db: Sesión de base de datos
            id: ID del objeto a obtener

        Returns:
            El objeto solicitado o None si no existe
        """
        return db.query(self.model).filter(self.model.id == id).first()

    def get_multi(
        self, db: Session, *, skip: int = 0, limit: int = 100,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[ModelType]:
        """
        Obtener múltiples registros con filtros opcionales.

        Args:
            db: Sesión de base de datos
            skip: Número de registros a omitir (paginación)
            limit: Número máximo de registros a devolver
            filters: Diccionario de filtros adicionales {campo: valor}

        Returns:
            Lista de objetos que coinciden con los criterios
        """
        query = db.query(self.model)

        if filters:
            for field, value in filters.items():
                if hasattr(self.model, field):
                    query = query.filter(getattr(self.model, field) == value)

        return query.order_by(self.model.id).offset(skip).limit(limit).all()

    def create(self, db: Session, *, obj_in: Union[CreateSchemaType, Dict[str, Any]], commit: bool = True) -> ModelType:
        """
        Crear un nuevo registro.

        Args:
            db: Sesión de base de datos
            obj_in: Datos del objeto a crear (schema o diccionario)
            commit: Si es False solo hace flush, para formar parte de una transacción mayor

        Returns:
            El objeto creado
        """
        # model_dump() preserva los datetime aware y los Decimal
        obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()

        db_obj = self.model(**obj_in_data)
        db.add(db_obj)
        if commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True
    ) -> ModelType:
        """
        Actualizar un registro con los campos presentes en obj_in.

        Args:
            db: Sesión de base de datos
            db_obj: Objeto existente a actualizar
            obj_in: Datos de actualización (solo se aplican los campos enviados)
            commit: Si es False solo hace flush

        Returns:
            El objeto actualizado
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        db.add(db_obj)
        if commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def remove(self, db: Session, *, id: int) -> ModelType:
        """
        Eliminar un registro.

        Raises:
            ValueError: Si el objeto no existe
        """
        obj = self.get(db, id=id)
        if not obj:
            raise ValueError(f"Objeto con ID {id} no encontrado")

        db.delete(obj)
        db.commit()
        return obj

    def exists(self, db: Session, id: int) -> bool:
        query = db.query(self.model.id).filter(self.model.id == id)
        return db.query(query.exists()).scalar()

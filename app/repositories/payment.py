from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.models.payment import Payment, PaymentStatus
from app.repositories.base import BaseRepository
from app.schemas.payment import Payment as PaymentSchema


class PaymentRepository(BaseRepository[Payment, PaymentSchema, PaymentSchema]):
    def _with_relations(self, db: Session):
        return db.query(Payment).options(
            joinedload(Payment.user),
            joinedload(Payment.package),
            joinedload(Payment.location),
        )

    def get_pending(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[Payment]:
        """Pagos pendientes de revisión, los más antiguos primero"""
        return (
            self._with_relations(db)
            .filter(Payment.status == PaymentStatus.PENDING)
            .order_by(Payment.created_at.asc(), Payment.id.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_by_user(self, db: Session, *, user_id: int) -> List[Payment]:
        return (
            self._with_relations(db)
            .filter(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )

    def get_for_update(self, db: Session, id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == id).with_for_update().first()

    def get_approved_between(self, db: Session, *, start: datetime, end: datetime) -> List[Payment]:
        """Pagos aprobados cuya revisión cae en [start, end)"""
        return (
            self._with_relations(db)
            .filter(
                Payment.status == PaymentStatus.APPROVED,
                Payment.reviewed_at >= start,
                Payment.reviewed_at < end,
            )
            .order_by(Payment.reviewed_at)
            .all()
        )

    def pending_totals(self, db: Session) -> Tuple[int, Decimal]:
        count, total = (
            db.query(func.count(Payment.id), func.coalesce(func.sum(Payment.total_amount), 0))
            .filter(Payment.status == PaymentStatus.PENDING)
            .one()
        )
        return int(count or 0), Decimal(str(total or 0))

    def approved_total(self, db: Session, *, since: Optional[datetime] = None) -> Decimal:
        query = db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(Payment.status == PaymentStatus.APPROVED)
        if since is not None:
            query = query.filter(Payment.reviewed_at >= since)
        return Decimal(str(query.scalar() or 0))

    def count_pending(self, db: Session) -> int:
        return db.query(func.count(Payment.id)).filter(Payment.status == PaymentStatus.PENDING).scalar() or 0


payment_repository = PaymentRepository(Payment)

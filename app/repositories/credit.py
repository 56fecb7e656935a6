from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from app.models.credit import CreditTransaction, CreditTransactionType
from app.models.package import MemberPackage
from app.repositories.base import BaseRepository
from app.schemas.booking import ManualRefund


class CreditTransactionRepository(BaseRepository[CreditTransaction, ManualRefund, ManualRefund]):
    def log(
        self,
        db: Session,
        *,
        member_package: MemberPackage,
        transaction_type: CreditTransactionType,
        credits_change: int,
        booking_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> CreditTransaction:
        """
        Registra un movimiento con balance_after igual al saldo actual del paquete.

        No hace commit: siempre forma parte de la transacción que modifica el paquete.
        """
        transaction = CreditTransaction(
            user_id=member_package.user_id,
            member_package_id=member_package.id,
            booking_id=booking_id,
            transaction_type=transaction_type,
            credits_change=credits_change,
            balance_after=member_package.sessions_remaining,
            notes=notes,
        )
        db.add(transaction)
        db.flush()
        return transaction

    def get_by_user(self, db: Session, *, user_id: int, limit: int = 100) -> List[CreditTransaction]:
        return (
            db.query(CreditTransaction)
            .options(joinedload(CreditTransaction.member_package).joinedload(MemberPackage.package))
            .filter(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
            .limit(limit)
            .all()
        )


credit_transaction_repository = CreditTransactionRepository(CreditTransaction)

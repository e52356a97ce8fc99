# marketplace/services/accounting_service.py
from decimal import Decimal

from sqlalchemy.orm import Session

from marketplace.domain.errors import NotFound
from marketplace.repos.store_repo import StoreRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class AccountingService:
    """Zarobki sprzedawcy. Wywolywane raz na sklep przy przejsciu do Delivered."""

    def __init__(self, db: Session):
        self.repo = StoreRepo(db)

    def credit_seller_earnings(self, store_id: int, amount: Decimal) -> None:
        #bez commita, wchodzi w transakcje przejscia statusu
        rowcount = self.repo.credit(store_id, amount)
        if rowcount == 0:
            raise NotFound(f"Sklep {store_id} nie istnieje")
        logger.info(f"Store {store_id} credited {amount}")

from sqlalchemy.orm import Session

from src.booking.infra.repositories import (
    SqlUserRepo, SqlPlanRepo, SqlSubscriptionRepo, SqlSessionSlotRepo,
)

class SqlAlchemyUoW:
    def __init__(self, db: Session):
        self.db = db

        self.users = SqlUserRepo(db)
        self.plans = SqlPlanRepo(db)
        self.subscriptions = SqlSubscriptionRepo(db)
        self.slots = SqlSessionSlotRepo(db)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

"""Association persistence."""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from donvie_api.db.models import Association


class AssociationRepository:
    """Repository for associations. Never commits; callers own the transaction."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, association_id: int, for_update: bool = False) -> Optional[Association]:
        """Load one association.

        for_update=True issues SELECT ... FOR UPDATE (a no-op on SQLite,
        whose writers are already serialised by BEGIN IMMEDIATE).
        """
        stmt = select(Association).where(Association.id == association_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def list_all(self) -> list[Association]:
        stmt = select(Association).order_by(Association.name.asc(), Association.id.asc())
        return list(self.db.execute(stmt).scalars())

    def list_by_category(self, category: str) -> list[Association]:
        stmt = (
            select(Association)
            .where(Association.category == category)
            .order_by(Association.name.asc(), Association.id.asc())
        )
        return list(self.db.execute(stmt).scalars())

    def count(self) -> int:
        return self.db.execute(select(func.count(Association.id))).scalar_one()

    def add(self, association: Association) -> Association:
        self.db.add(association)
        self.db.flush()
        return association

    def increment_aggregates(self, association_id: int, amount_cents: int, new_donors: int) -> int:
        """Atomic in-database increment of the cached counters.

        Returns:
            Number of rows updated (0 if the association vanished)
        """
        stmt = (
            update(Association)
            .where(Association.id == association_id)
            .values(
                total_raised_cents=Association.total_raised_cents + amount_cents,
                donor_count=Association.donor_count + new_donors,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount

"""Association directory endpoints.

Endpoints:
- GET   /api/associations                       list (public)
- GET   /api/associations/stats                 dashboard stats of the caller's association
- GET   /api/associations/search/{query}        name/mission substring search (public)
- GET   /api/associations/category/{category}   category filter, "all" = no filter (public)
- GET   /api/associations/{id}                  detail (public)
- POST  /api/associations                       register an association for the caller
- PATCH /api/associations/{id}                  presentation update (owner only)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from donvie_api.auth.identity import require_association_owner, require_principal
from donvie_api.auth.principal import Principal
from donvie_api.db.session import get_db
from donvie_api.errors import ForbiddenError
from donvie_api.ledger.directory import AssociationDirectory
from donvie_api.ledger.stats import StatsAggregator
from donvie_api.schemas import AssociationCreate, AssociationOut, AssociationStatsOut, AssociationUpdate

router = APIRouter(prefix="/api/associations", tags=["associations"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[AssociationOut])
def list_associations(db: Session = Depends(get_db)):
    return AssociationDirectory(db).list()


@router.get("/stats", response_model=AssociationStatsOut)
def association_stats(
    principal: Principal = Depends(require_association_owner),
    db: Session = Depends(get_db),
):
    """Totals, distinct donors, average and current-month figures."""
    return AssociationStatsOut.model_validate(StatsAggregator(db).stats_for(principal.association_id))


@router.get("/search/{query}", response_model=list[AssociationOut])
def search_associations(query: str, db: Session = Depends(get_db)):
    return AssociationDirectory(db).search(query)


@router.get("/category/{category}", response_model=list[AssociationOut])
def associations_by_category(category: str, db: Session = Depends(get_db)):
    return AssociationDirectory(db).by_category(category)


@router.get("/{association_id}", response_model=AssociationOut)
def get_association(association_id: int, db: Session = Depends(get_db)):
    return AssociationDirectory(db).get(association_id)


@router.post("", response_model=AssociationOut, status_code=status.HTTP_201_CREATED)
def create_association(
    body: AssociationCreate,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    """Register a new (unverified) association owned by the caller.

    Returns:
        201 with the association; 409 if the caller already manages one
    """
    return AssociationDirectory(db).register_for_owner(principal.id, body)


@router.patch("/{association_id}", response_model=AssociationOut)
def update_association(
    association_id: int,
    body: AssociationUpdate,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    directory = AssociationDirectory(db)
    directory.get(association_id)

    if not principal.owns_association(association_id):
        logger.warning(
            "Association update by non-owner",
            extra={"event": "association.update.forbidden", "association_id": association_id},
        )
        raise ForbiddenError("You can only edit the association you manage")

    return directory.update(association_id, body)

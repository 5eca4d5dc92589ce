"""Current-user endpoints (onboarding)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from donvie_api.auth.identity import IdentityResolver, require_principal
from donvie_api.auth.principal import Principal
from donvie_api.db.repo_users import UserRepository
from donvie_api.db.session import get_db
from donvie_api.errors import NotFoundError
from donvie_api.ledger.directory import AssociationDirectory
from donvie_api.schemas import AssociationOut, UpdateUserTypeRequest, UserOut

router = APIRouter(prefix="/api/user", tags=["users"])


@router.post("/update-type", response_model=UserOut)
def update_user_type(
    body: UpdateUserTypeRequest,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    """Choose donor or association after first login. Idempotent."""
    IdentityResolver(db).update_user_type(principal.id, body.user_type)
    return UserRepository(db).get_by_id(principal.id)


@router.get("/association", response_model=AssociationOut)
def my_association(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    association = AssociationDirectory(db).owned_by(principal.id)
    if association is None:
        raise NotFoundError("No association is linked to this account")
    return association

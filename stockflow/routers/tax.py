from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockflow.core.responses import success
from stockflow.core.security import Identity
from stockflow.dependencies import get_db, require_admin, require_auth
from stockflow.schemas.tax import TaxCalculationRequest, TaxConfigRead, TaxConfigUpdate
from stockflow.services import tax_service

router = APIRouter(prefix="/tax", tags=["Tax"])


def _config(config):
    return TaxConfigRead.model_validate(config).dump()


@router.get("")
def get_tax_config(_identity: Identity = Depends(require_auth), db: Session = Depends(get_db)):
    return success(_config(tax_service.get_global_tax_config(db)))


@router.post("")
def update_tax_config(
    payload: TaxConfigUpdate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    config = tax_service.update_global_tax_config(db, identity, payload)
    return success(_config(config), message="Tax configuration updated successfully")


@router.delete("")
def deactivate_tax_config(
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    tax_service.deactivate_global_tax_config(db, identity)
    return success(message="Tax configuration deactivated successfully")


@router.post("/calculate")
def calculate(
    payload: TaxCalculationRequest,
    _identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return success(tax_service.calculate_taxes(payload.subtotal, tax_service.active_tax_config(db)))


__all__ = ["router"]

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockflow.core.responses import created, success
from stockflow.core.security import Identity
from stockflow.dependencies import get_db, require_auth
from stockflow.schemas.product import (
    PriceHistoryRead,
    ProductRead,
    ProductUpdate,
    ProductWrite,
    StockRefill,
)
from stockflow.services import history_service, product_service
from stockflow.services.stock_service import refill_stock

router = APIRouter(prefix="/products", tags=["Products"])


def _product(product):
    return ProductRead.model_validate(product).dump()


@router.get("")
def list_products(
    low_stock: bool = Query(False, alias="lowStock"),
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    products = product_service.list_products(db, identity, low_stock=low_stock)
    return success([_product(p) for p in products], count=len(products))


@router.post("")
def create_product(
    payload: ProductWrite,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    product = product_service.create_product(db, identity, payload)
    return created(_product(product), message="Product created successfully")


@router.get("/{product_id}")
def get_product(
    product_id: int,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return success(_product(product_service.get_product(db, identity, product_id)))


@router.put("/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    product = product_service.update_product(db, identity, product_id, payload)
    return success(_product(product), message="Product updated successfully")


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    product_service.delete_product(db, identity, product_id)
    return success(message="Product deleted successfully")


@router.post("/{product_id}/refill")
def refill_product(
    product_id: int,
    payload: StockRefill,
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    product = refill_stock(db, identity, product_id, payload)
    return success(_product(product), message="Stock refilled successfully")


@router.get("/{product_id}/stock-history")
def stock_history(
    product_id: int,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    limit: Optional[int] = Query(None),
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    data = history_service.stock_history(
        db,
        identity,
        product_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return success(data)


@router.get("/{product_id}/price-history")
def price_history(
    product_id: int,
    price_type: Optional[str] = Query(None, alias="priceType"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    limit: Optional[int] = Query(None),
    identity: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
):
    data = history_service.price_history(
        db,
        identity,
        product_id,
        price_type=price_type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    data["history"] = [PriceHistoryRead.model_validate(row).dump() for row in data["history"]]
    return success(data)


__all__ = ["router"]

# marketplace/api/routers/products.py
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from marketplace.api.deps import get_actor
from marketplace.data.database import get_db
from marketplace.domain.schemas import ProductCreate, ProductOut, ProductUpdate
from marketplace.services.access_policy import Actor
from marketplace.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["products"])


def get_service(db: Session):
    return CatalogService(db)


@router.post("/", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).create_product(actor, payload)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return get_service(db).get_product(product_id)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).update_product(actor, product_id, payload)


@router.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    get_service(db).delete_product(actor, product_id)
    return Response(status_code=204)

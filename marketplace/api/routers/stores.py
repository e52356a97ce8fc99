from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_actor
from marketplace.data.database import get_db
from marketplace.domain.schemas import ProductOut, StoreCreate, StoreOut
from marketplace.services.access_policy import Actor
from marketplace.services.catalog_service import CatalogService

router = APIRouter(prefix="/stores", tags=["stores"])


@router.post("/", response_model=StoreOut, status_code=201)
def create_store(
    payload: StoreCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return CatalogService(db).create_store(actor, payload)


@router.get("/{store_id}", response_model=StoreOut)
def get_store(store_id: int, db: Session = Depends(get_db)):
    return CatalogService(db).get_store(store_id)


@router.get("/{store_id}/products", response_model=List[ProductOut])
def list_store_products(store_id: int, db: Session = Depends(get_db)):
    return CatalogService(db).list_store_products(store_id)

#marketplace/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_actor, to_selection
from marketplace.data.database import get_db
from marketplace.domain.schemas import CartOut, ItemIn, ItemRemove, ItemUpdate
from marketplace.services.access_policy import Actor
from marketplace.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(db: Session):
    return CartService(db)


@router.get("/me", response_model=CartOut)
def view_cart(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return get_service(db).view_cart(actor)


@router.post("/me/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).add_item(
        actor,
        product_id=payload.product_id,
        selection=to_selection(payload.selection),
        quantity=payload.quantity,
    )


@router.patch("/me/items", response_model=CartOut)
def update_item(
    payload: ItemUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).update_item(
        actor,
        product_id=payload.product_id,
        selection=to_selection(payload.selection),
        quantity=payload.quantity,
    )


@router.delete("/me/items", response_model=CartOut)
def remove_item(
    payload: ItemRemove,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).remove_item(
        actor,
        product_id=payload.product_id,
        selection=to_selection(payload.selection),
    )


@router.delete("/me", response_model=CartOut)
def clear_cart(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return get_service(db).clear_cart(actor)

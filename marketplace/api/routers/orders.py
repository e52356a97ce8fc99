# marketplace/api/routers/orders.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_actor, get_lock_service, to_selection
from marketplace.data.database import get_db
from marketplace.domain.schemas import ItemIn, OrderOut, PaymentStatusIn, PlaceOrderIn, TransitionIn
from marketplace.services.access_policy import Actor
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.lock_service import LockService
from marketplace.services.order_service import OrderService

router = APIRouter(tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout_from_cart(
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    """
    Rezerwuje stan dla calego koszyka i tworzy zamowienie Pending.
    """
    return CheckoutService(db, lock_service).checkout_from_cart(actor)


@router.post("/checkout/product", response_model=OrderOut, status_code=201)
def checkout_from_product(
    payload: ItemIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    "Kup teraz" - zamowienie Pending dla jednego produktu, bez koszyka.
    """
    return CheckoutService(db).checkout_from_product(
        actor, payload.product_id, to_selection(payload.selection), payload.quantity
    )


@router.post("/orders/{order_id}/place", response_model=OrderOut)
def place_order(
    order_id: int,
    payload: PlaceOrderIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Dane dostawy + Pending -> Placed, czysci koszyk.
    """
    return CheckoutService(db).place_order(order_id, actor, payload)


@router.get("/orders/me", response_model=List[OrderOut])
def list_my_orders(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return get_service(db).list_for_customer(actor)


@router.get("/orders/seller", response_model=List[OrderOut])
def list_seller_orders(
    status: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).list_for_seller(actor, status)


@router.get("/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return get_service(db).get_order(order_id, actor)


@router.post("/orders/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    payload: TransitionIn | None = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).cancel(order_id, actor, note=payload.note if payload else None)


@router.post("/orders/{order_id}/ship", response_model=OrderOut)
def ship_order(
    order_id: int,
    payload: TransitionIn | None = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).ship(order_id, actor, note=payload.note if payload else None)


@router.post("/orders/{order_id}/deliver", response_model=OrderOut)
def deliver_order(
    order_id: int,
    payload: TransitionIn | None = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).deliver(order_id, actor, note=payload.note if payload else None)


@router.post("/orders/{order_id}/payment", response_model=OrderOut)
def update_payment_status(
    order_id: int,
    payload: PaymentStatusIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db).update_payment_status(order_id, actor, payload.payment_status)

# marketplace/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime


class SelectionIn(BaseModel):
    """Wybor wariantu i opcji dla linii koszyka."""

    variant_id: Optional[int] = Field(None, gt=0, description="ID wariantu (rozmiar itp.)")
    option_ids: List[int] = Field(default_factory=list, description="ID opcji z grup wyboru")


class SelectionOut(BaseModel):
    variant_id: Optional[int] = None
    option_ids: List[int] = []
    key: str = ""


# ---------- stores ----------

class StoreCreate(BaseModel):
    """Schema dla tworzenia sklepu."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""


class StoreOut(BaseModel):
    id: int
    owner_id: int
    name: str
    description: str
    completed_orders: int
    total_earnings: Decimal

    model_config = ConfigDict(from_attributes=True)


# ---------- products ----------

class VariantIn(BaseModel):
    id: Optional[int] = Field(None, gt=0, description="ID istniejacego wariantu (przy edycji)")
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    image: str = ""


class ChoiceOptionIn(BaseModel):
    id: Optional[int] = Field(None, gt=0)
    name: str = Field(..., min_length=1)
    price: Decimal = Field(Decimal("0.00"), ge=0)
    stock: int = Field(0, ge=0)
    image: str = ""


class ChoiceGroupIn(BaseModel):
    id: Optional[int] = Field(None, gt=0)
    name: str = Field(..., min_length=1)
    is_required: bool = False
    allow_multiple: bool = False
    options: List[ChoiceOptionIn] = Field(..., min_length=1)


class ProductCreate(BaseModel):
    """Schema dla tworzenia produktu przez sprzedawce."""

    store_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    category: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0, description="Stan bazowy (gdy brak wariantow)")
    estimated_time_minutes: Optional[int] = Field(None, ge=0)
    shipping_fee: Decimal = Field(Decimal("0.00"), ge=0)
    variants: List[VariantIn] = []
    choice_groups: List[ChoiceGroupIn] = []


class ProductUpdate(BaseModel):
    """Edycja produktu, pola pominiete zostaja bez zmian."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    estimated_time_minutes: Optional[int] = Field(None, ge=0)
    shipping_fee: Optional[Decimal] = Field(None, ge=0)
    variants: Optional[List[VariantIn]] = None
    choice_groups: Optional[List[ChoiceGroupIn]] = None


class VariantOut(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: int
    image: str

    model_config = ConfigDict(from_attributes=True)


class ChoiceOptionOut(VariantOut):
    pass


class ChoiceGroupOut(BaseModel):
    id: int
    name: str
    is_required: bool
    allow_multiple: bool
    options: List[ChoiceOptionOut]

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    id: int
    store_id: int
    name: str
    description: str
    category: str
    price: Decimal
    stock: int
    availability: str
    estimated_time_minutes: Optional[int] = None
    shipping_fee: Decimal
    variants: List[VariantOut]
    choice_groups: List[ChoiceGroupOut]

    model_config = ConfigDict(from_attributes=True)


# ---------- cart ----------

class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi byc > 0)")
    quantity: int = Field(1, ge=1, description="Ilosc produktu (musi byc >= 1)")
    selection: SelectionIn = Field(default_factory=SelectionIn)


class ItemUpdate(BaseModel):
    """Zmiana ilosci, quantity < 1 usuwa linie."""

    product_id: int = Field(..., gt=0)
    quantity: int
    selection: SelectionIn = Field(default_factory=SelectionIn)


class ItemRemove(BaseModel):
    product_id: int = Field(..., gt=0)
    selection: SelectionIn = Field(default_factory=SelectionIn)


class CartItemOut(BaseModel):
    """Schema dla produktu w koszyku (response)."""

    product_id: int
    product_name: Optional[str] = None
    selection: SelectionOut
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    available: bool
    price_changed: bool


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: Optional[int] = None
    customer_id: int
    items: List[CartItemOut]
    item_count: int
    total: Decimal


# ---------- orders ----------

class PlaceOrderIn(BaseModel):
    """
    Dane klienta przy skladaniu zamowienia.
    Puste pola sa walidowane w serwisie, zeby blad wymienial brakujace pola.
    """

    customer_name: str = ""
    contact_number: str = ""
    delivery_location: str = ""
    payment_method: str = ""
    notes: Optional[str] = None


class TransitionIn(BaseModel):
    note: Optional[str] = None


class PaymentStatusIn(BaseModel):
    payment_status: str


class OrderItemOut(BaseModel):
    product_id: int
    store_id: int
    product_name: str
    selection: SelectionOut
    selection_label: str
    quantity: int
    price_at_purchase: Decimal
    subtotal: Decimal


class StatusEventOut(BaseModel):
    status: str
    actor_id: Optional[int] = None
    actor_role: str
    note: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema dla zamowienia (response)."""

    id: int
    customer_id: int
    status: str
    payment_status: str
    items: List[OrderItemOut]
    total_amount: Decimal
    shipping_fee: Decimal
    estimated_delivery_minutes: Optional[int] = None
    customer_name: Optional[str] = None
    contact_number: Optional[str] = None
    delivery_location: Optional[str] = None
    payment_method: str
    notes: Optional[str] = None
    created_at: datetime
    history: List[StatusEventOut] = []

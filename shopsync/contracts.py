"""
Boundary contracts — pydantic models for API payloads.

Incoming payloads are validated here and converted with `to_domain()`;
outgoing views are built with `from_domain()`. Amounts on the wire are
decimal major units; inside the core they are cents.

    product = ProductPayload.model_validate(resp.json()["data"]).to_domain()
    methods = parse_payment_methods(resp.json()["data"])
    body = OrderView.from_domain(order).model_dump(mode="json")
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from shopsync._types import (
    ApprovalStatus,
    OrderStatus,
    PaymentMethodType,
    PaymentStatus,
)
from shopsync.cart import CartLine, CartSnapshot, Coupon
from shopsync.money import from_minor, to_minor
from shopsync.orders import Address, Order, OrderSummary, badge, project
from shopsync.ports import PaymentMethodRef, Product

Amount = Annotated[Decimal, Field(ge=0, decimal_places=2)]

# ═══════════════════════════════════════════════════════════════════════════════
# Product
# ═══════════════════════════════════════════════════════════════════════════════


class ProductPayload(BaseModel):
    id: int
    name: str = ""
    price: Amount
    sale_price: Amount | None = None
    stock: int = Field(ge=0, validation_alias=AliasChoices("stock", "quantity"))

    @model_validator(mode="after")
    def _sale_below_price(self) -> ProductPayload:
        if self.sale_price is not None and self.sale_price >= self.price:
            raise ValueError("sale_price must be lower than price")
        return self

    def to_domain(self) -> Product:
        return Product(
            id=self.id,
            price=to_minor(self.price),
            stock=self.stock,
            sale_price=None if self.sale_price is None else to_minor(self.sale_price),
            name=self.name,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Methods — one model per type, discriminated on `type`
# ═══════════════════════════════════════════════════════════════════════════════


class _MethodPayload(BaseModel):
    id: int
    name: str
    description: str = ""
    is_active: bool = True

    def to_domain(self) -> PaymentMethodRef:
        return PaymentMethodRef(
            id=self.id,
            type=PaymentMethodType(self.type),  # type: ignore[attr-defined]
            is_active=self.is_active,
            name=self.name,
        )


class CardMethod(_MethodPayload):
    type: Literal["card"]


class PayPalMethod(_MethodPayload):
    type: Literal["paypal"]


class BankTransferMethod(_MethodPayload):
    type: Literal["bank_transfer"]


class DigitalWalletMethod(_MethodPayload):
    type: Literal["digital_wallet"]


PaymentMethodPayload = Annotated[
    CardMethod | PayPalMethod | BankTransferMethod | DigitalWalletMethod,
    Field(discriminator="type"),
]

_METHODS: TypeAdapter[list[PaymentMethodPayload]] = TypeAdapter(list[PaymentMethodPayload])


def parse_payment_methods(data: Any) -> list[PaymentMethodRef]:
    """Validate a list of payment-method payloads. Unknown types are rejected."""
    return [m.to_domain() for m in _METHODS.validate_python(data)]


# ═══════════════════════════════════════════════════════════════════════════════
# Address
# ═══════════════════════════════════════════════════════════════════════════════


class AddressPayload(BaseModel):
    """Address as the storefront forms send it (address_line_1/2)."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    line1: str = Field("", alias="address_line_1")
    line2: str | None = Field(None, alias="address_line_2")
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    @field_validator("line2", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Any:
        return None if isinstance(v, str) and not v.strip() else v

    def to_domain(self) -> Address:
        return Address(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            line1=self.line1,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            country=self.country,
            line2=self.line2,
        )

    @classmethod
    def from_domain(cls, dom: Address) -> AddressPayload:
        return cls(
            first_name=dom.first_name,
            last_name=dom.last_name,
            email=dom.email,
            phone=dom.phone,
            line1=dom.line1,
            line2=dom.line2,
            city=dom.city,
            state=dom.state,
            postal_code=dom.postal_code,
            country=dom.country,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Order History
# ═══════════════════════════════════════════════════════════════════════════════


class OrderItemPayload(BaseModel):
    product_name: str = Field(
        validation_alias=AliasChoices("product_name", AliasPath("product", "name"))
    )
    quantity: int = Field(ge=1)


class OrderSummaryPayload(BaseModel):
    """An entry of the customer's order list."""

    order_number: str
    order_status: OrderStatus = Field(
        validation_alias=AliasChoices("order_status", "status")
    )
    approval_status: ApprovalStatus | None = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    total_amount: Amount
    created_at: datetime
    items: list[OrderItemPayload] = Field(default_factory=list)

    @field_validator("order_status", "approval_status", "payment_status", mode="before")
    @classmethod
    def _lowercase(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    def to_domain(self) -> OrderSummary:
        return OrderSummary(
            order_number=self.order_number,
            order_status=self.order_status,
            created_at=self.created_at,
            total=to_minor(self.total_amount),
            payment_status=self.payment_status,
            approval_status=self.approval_status,
            item_names=tuple(i.product_name for i in self.items),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Order View (outgoing)
# ═══════════════════════════════════════════════════════════════════════════════


class OrderLineView(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderView(BaseModel):
    order_number: str
    payment_status: PaymentStatus
    order_status: OrderStatus
    display_status: str
    status_label: str
    lines: list[OrderLineView]
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    created_at: datetime
    shipping_address: AddressPayload | None = None
    notes: str | None = None

    @classmethod
    def from_domain(cls, dom: Order) -> OrderView:
        t = dom.totals
        return cls(
            order_number=dom.order_number,
            payment_status=dom.payment_status,
            order_status=dom.order_status,
            display_status=project(dom).value,
            status_label=badge(dom).label,
            lines=[
                OrderLineView(
                    product_id=ln.product_id,
                    quantity=ln.quantity,
                    unit_price=from_minor(ln.unit_price),
                    line_total=from_minor(ln.line_total),
                )
                for ln in dom.lines
            ],
            subtotal=from_minor(t.subtotal),
            discount=from_minor(t.discount),
            tax=from_minor(t.tax),
            shipping=from_minor(t.shipping),
            total=from_minor(t.total),
            created_at=dom.created_at,
            shipping_address=(
                AddressPayload.from_domain(addr)
                if (addr := dom.shipping_address or dom.billing_address) is not None
                else None
            ),
            notes=dom.notes,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Stored Cart
# ═══════════════════════════════════════════════════════════════════════════════


class CouponPayload(BaseModel):
    code: str
    discount_rate: Decimal = Field(gt=0, lt=1)


class CartLinePayload(BaseModel):
    id: str
    product_id: int
    quantity: int = Field(ge=1)
    unit_price: Amount
    available_stock: int = Field(ge=0)


class CartPayload(BaseModel):
    """A cart as saved between sessions."""

    lines: list[CartLinePayload] = Field(default_factory=list)
    coupon: CouponPayload | None = None

    @field_validator("lines")
    @classmethod
    def _unique_products(cls, v: list[CartLinePayload]) -> list[CartLinePayload]:
        ids = [ln.product_id for ln in v]
        if len(ids) != len(set(ids)):
            raise ValueError("each product may appear on one line only")
        return v

    def to_domain(self) -> CartSnapshot:
        return CartSnapshot(
            lines=tuple(
                CartLine(
                    id=ln.id,
                    product_id=ln.product_id,
                    quantity=ln.quantity,
                    unit_price=to_minor(ln.unit_price),
                    available_stock=ln.available_stock,
                )
                for ln in self.lines
            ),
            coupon=(
                Coupon(self.coupon.code.strip().upper(), self.coupon.discount_rate)
                if self.coupon
                else None
            ),
        )

    @classmethod
    def from_domain(cls, dom: CartSnapshot) -> CartPayload:
        return cls(
            lines=[
                CartLinePayload(
                    id=ln.id,
                    product_id=ln.product_id,
                    quantity=ln.quantity,
                    unit_price=from_minor(ln.unit_price),
                    available_stock=ln.available_stock,
                )
                for ln in dom.lines
            ],
            coupon=(
                CouponPayload(code=dom.coupon.code, discount_rate=dom.coupon.discount_rate)
                if dom.coupon
                else None
            ),
        )


__all__ = (
    "ProductPayload",
    "CardMethod",
    "PayPalMethod",
    "BankTransferMethod",
    "DigitalWalletMethod",
    "PaymentMethodPayload",
    "parse_payment_methods",
    "AddressPayload",
    "OrderItemPayload",
    "OrderSummaryPayload",
    "OrderLineView",
    "OrderView",
    "CouponPayload",
    "CartLinePayload",
    "CartPayload",
)

"""
Checkout scenarios.

Each scenario builds a fresh stack of in-memory collaborators.
"""

from __future__ import annotations

from kungfu import Ok, Error

from shopsync import cart as K
from shopsync import checkout as W
from shopsync import orders as O
from shopsync import pricing as P
from shopsync._types import TransactionStatus
from shopsync.money import format_minor
from examples._infra import ADA, Stack, banner, show_totals


async def fill_cart(stack: Stack, cart: K.CartManager) -> None:
    """Two headphones and a watch, priced from the live catalog."""
    for product_id, quantity in ((1, 2), (2, 1)):
        product = await stack.catalog.get_product(product_id)
        match cart.add_item(product_id, quantity, product.effective_price, product.stock):
            case Ok(added):
                print(f"  + {quantity} × {product.name} ({added.line.id})")
            case Error(e):
                print(f"  ! {e.message}")


async def walk_to_review(wizard: W.CheckoutWizard, method_id: int) -> bool:
    wizard.set_billing(ADA)
    for select in (None, method_id):
        if select is not None:
            wizard.select_payment_method(select)
        match await wizard.advance():
            case Ok(state):
                print(f"  → {state.step.label}")
            case Error(e):
                print(f"  ✗ {e.message}")
                return False
    return True


async def happy_path() -> None:
    banner("1. SAVE10 checkout, card captured")
    stack = Stack()
    cart = K.CartManager()
    await fill_cart(stack, cart)
    P.CouponResolver().apply(cart, " save10 ")
    show_totals(P.Pricing().breakdown(cart))

    match W.CheckoutWizard.begin(cart, stack.submitter()):
        case Ok(wizard):
            pass
        case Error(e):
            print(f"  ✗ {e.message}")
            return

    if not await walk_to_review(wizard, 1):
        return
    match await wizard.submit():
        case Ok(submission):
            order = submission.order
            print(f"  ✓ {order.order_number} {O.badge(order).label}, {format_minor(order.total)}")
            print(f"    cart empty: {cart.is_empty}")
        case Error(e):
            print(f"  ✗ {e.message}")


async def declined_then_retry() -> None:
    banner("2. Card declined, PayPal succeeds")
    stack = Stack()
    stack.gateway.script(TransactionStatus.FAILED, reason="card declined")
    cart = K.CartManager()
    await fill_cart(stack, cart)

    match W.CheckoutWizard.begin(cart, stack.submitter()):
        case Ok(wizard):
            pass
        case Error(e):
            print(f"  ✗ {e.message}")
            return

    if not await walk_to_review(wizard, 1):
        return
    match await wizard.submit():
        case Ok(_):
            print("  unexpected capture")
        case Error(e):
            print(f"  ✗ {e.message}; still at {wizard.current_step().label}")

    wizard.back()
    wizard.select_payment_method(2)
    await wizard.advance()
    match await wizard.submit():
        case Ok(submission):
            txs = stack.store.transactions_for(submission.order.id)
            print(f"  ✓ {submission.order.order_number} paid after {len(txs)} attempts")
        case Error(e):
            print(f"  ✗ {e.message}")


async def stock_drop() -> None:
    banner("3. Stock drops before submission")
    stack = Stack()
    cart = K.CartManager()
    await fill_cart(stack, cart)

    match W.CheckoutWizard.begin(cart, stack.submitter()):
        case Ok(wizard):
            pass
        case Error(e):
            print(f"  ✗ {e.message}")
            return

    if not await walk_to_review(wizard, 1):
        return
    stack.catalog.set_stock(1, 1)
    match await wizard.submit():
        case Ok(_):
            print("  unexpected submission")
        case Error(e):
            print(f"  ✗ {e.message}")
            print(f"    orders persisted: {len(stack.store.orders)}")


async def slow_gateway() -> None:
    banner("4. Gateway slower than the deadline")
    stack = Stack()
    stack.gateway.latency = 0.3
    stack.policy = stack.policy.with_capture_timeout(seconds=0.1)
    submitter = stack.submitter()
    cart = K.CartManager()
    await fill_cart(stack, cart)

    match await submitter.submit(cart, payment_method_id=4, billing_address=ADA):
        case Error(e):
            print(f"  ✗ {e.message}")
        case Ok(_):
            print("  unexpected capture")

    await submitter.drain()
    for order in stack.store.orders.values():
        print(f"  after reconciliation: {order.order_number} {order.payment_status.value}")
    print(f"    cart empty: {cart.is_empty}")


async def history() -> None:
    banner("5. Order history")
    stack = Stack()
    submitter = stack.submitter()
    cart = K.CartManager()
    await fill_cart(stack, cart)
    match await submitter.submit(cart, payment_method_id=1, billing_address=ADA):
        case Ok(submission):
            placed = submission.order
        case Error(e):
            print(f"  ✗ {e.message}")
            return

    names = stack.catalog.names()
    current, past = O.partition_history(stack.store.orders.values())
    print(f"  current: {len(current)}, past: {len(past)}")
    for order in O.filter_orders(current, query="watch", product_names=names):
        b = O.badge(order)
        print(f"  {order.order_number}  [{b.tone}/{b.icon}] {b.label}")

    match await O.reorder(placed, cart, stack.catalog):
        case Ok(r):
            print(f"  reordered {len(r.added)} product(s) into the cart")
        case Error(e):
            print(f"  ✗ {e.message}")

"""
FastAPI Application Entry Point

Tasty Bites Ordering - multi-branch restaurant ordering backend.
Runs against in-process auth and change feed in development and
against Supabase auth and a Redis change feed when hosted.

Endpoints:
    - POST /auth/sign-up, /auth/sign-in, /auth/sign-out; GET /auth/session
    - GET /api/branches, /api/menu/categories, /api/menu
    - POST /api/cart/quote: Price a cart without ordering
    - POST /api/orders: Checkout
    - GET /api/orders, /api/orders/{id}; PATCH /api/orders/{id}
    - POST /api/orders/{id}/cancel
    - GET /api/orders/stream: Live view of the caller's orders (SSE)
    - GET /api/staff/orders, /api/staff/orders/stream
    - GET /api/staff/orders/{id}/transitions
    - PATCH /api/staff/orders/{id}/status
    - POST /api/admin/staff: Assign a user to a branch
    - GET /health: System health check

Author: Your Name
Version: 1.0.0
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import httpx
import redis
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy import select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from tastybites.core.config import get_settings, setup_logging
from tastybites.core.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    OrderingError,
)
from tastybites.database import async_session_maker, engine, get_db, init_db
from tastybites.enums import OrderStatus
from tastybites.models import Order
from tastybites.ordering.cart import Cart
from tastybites.ordering.lifecycle import Actor, allowed_transitions
from tastybites.ordering.pricing import price_cart, validate_checkout
from tastybites.schemas import (
    BranchResponse,
    CartQuoteRequest,
    CategoryResponse,
    CheckoutRequest,
    ErrorResponse,
    HealthResponse,
    MenuItemResponse,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    OrderUpdateRequest,
    PriceBreakdownResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    StaffAssignmentRequest,
    StaffAssignmentResponse,
    StatusUpdateRequest,
    TransitionsResponse,
)
from tastybites.seed import seed_catalog
from tastybites.services import store
from tastybites.services.auth import SessionContext, get_auth_service
from tastybites.services.live import watch_view
from tastybites.services.policies import ANONYMOUS, AccessContext, staff_of_branch
from tastybites.services.realtime import ChangeEvent, get_change_feed

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 422, 503)
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    if settings.seed_catalog:
        async with async_session_maker() as db:
            if await seed_catalog(db):
                logger.info("✅ Demo catalog seeded")

    auth_service = get_auth_service()
    change_feed = get_change_feed()
    logger.info(f"✅ Auth Service: {auth_service.provider_name}")
    logger.info(f"✅ Change Feed: {change_feed.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Multi-branch restaurant ordering: menu browsing, cart checkout, "
        "order tracking and branch staff dashboards with live updates."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# SESSION & ACCESS DEPENDENCIES
# =============================================================================

async def get_session_context(
    authorization: Optional[str] = Header(None),
) -> SessionContext:
    """Resolve the ``Authorization: Bearer`` header to a live session."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Please sign in to continue")

    token = authorization[len("bearer "):].strip()
    session = await get_auth_service().get_session(token)
    if session is None:
        raise AuthenticationError("Your session has expired. Please sign in again")
    return session


async def get_access_context(
    session: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
) -> AccessContext:
    return await store.load_access_context(db, session)


async def require_staff(ctx: AccessContext = Depends(get_access_context)) -> AccessContext:
    if not ctx.is_staff:
        raise AuthorizationError("Staff access required")
    return ctx


async def require_admin(ctx: AccessContext = Depends(get_access_context)) -> AccessContext:
    if not ctx.is_admin:
        raise AuthorizationError("Admin access required")
    return ctx


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

async def build_cart(
    db: AsyncSession,
    ctx: AccessContext,
    request: CartQuoteRequest,
) -> Cart:
    """Consolidate submitted lines into a cart priced from the catalog."""
    catalog = await store.load_catalog(db, ctx, (line.menu_id for line in request.items))
    return Cart.from_lines(
        catalog,
        ((line.menu_id, line.quantity) for line in request.items),
        branch_id=request.branch_id,
    )


async def session_response(
    db: AsyncSession,
    user_id: uuid.UUID,
    email: Optional[str],
    access_token: Optional[str],
    message: Optional[str] = None,
) -> SessionResponse:
    ctx = await store.load_access_context(
        db, SessionContext(user_id=user_id, access_token=access_token or "", email=email)
    )
    try:
        profile = await store.get_profile(db, ctx, user_id)
    except NotFoundError:
        profile = None

    return SessionResponse(
        user_id=user_id,
        email=email,
        access_token=access_token,
        name=profile.name if profile else None,
        user_type=profile.user_type if profile else None,
        is_staff=ctx.is_staff,
        is_admin=ctx.is_admin,
        message=message,
    )


def order_list(orders: list[Order], actor: Actor) -> OrderListResponse:
    return OrderListResponse(
        total=len(orders),
        orders=[OrderResponse.from_order(order, actor) for order in orders],
    )


def stream_orders(
    fetch: Callable[[AsyncSession], Awaitable[list[Order]]],
    actor: Actor,
    is_relevant: Callable[[ChangeEvent], bool],
) -> StreamingResponse:
    """
    Server-sent events carrying the full order list, re-sent after every
    relevant change. Each fetch uses its own database session since the
    stream outlives the request scope.
    """
    async def fetch_view() -> OrderListResponse:
        async with async_session_maker() as db:
            return order_list(await fetch(db), actor)

    async def events() -> AsyncIterator[str]:
        async for view in watch_view(get_change_feed(), fetch_view, is_relevant=is_relevant):
            yield f"event: orders\ndata: {view.model_dump_json()}\n\n"

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.restaurant_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "menu": "/api/menu",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    feed = get_change_feed()
    feed_status = "healthy" if await feed.health_check() else "unhealthy"

    auth_service = get_auth_service()
    auth_status = "healthy" if await auth_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, feed_status, auth_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        change_feed=f"{feed.provider_name}: {feed_status}",
        auth_service=f"{auth_service.provider_name}: {auth_status}",
        timestamp=datetime.now(),
    )


# =============================================================================
# AUTH ENDPOINTS
# =============================================================================

@app.post(
    "/auth/sign-up",
    response_model=SessionResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Auth"],
)
async def sign_up(
    data: SignUpRequest,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Create a customer account and its profile."""
    result = await get_auth_service().sign_up(
        data.email,
        data.password,
        metadata={"name": data.name, "phone": data.phone or "", "user_type": "customer"},
    )
    await store.create_profile(
        db, AccessContext(user_id=result.user_id), data.email, data.name, data.phone,
    )

    message = "Account created successfully!"
    if not result.access_token:
        message = "Account created. Please confirm your email before signing in."
    return await session_response(db, result.user_id, result.email, result.access_token, message)


@app.post(
    "/auth/sign-in",
    response_model=SessionResponse,
    responses=ERROR_RESPONSES,
    tags=["Auth"],
)
async def sign_in(
    data: SignInRequest,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Sign in; ``is_staff`` tells the caller which dashboard to open."""
    result = await get_auth_service().sign_in(data.email, data.password)
    return await session_response(
        db, result.user_id, result.email, result.access_token, "Signed in successfully!"
    )


@app.post("/auth/sign-out", responses=ERROR_RESPONSES, tags=["Auth"])
async def sign_out(
    session: SessionContext = Depends(get_session_context),
) -> dict[str, Any]:
    await get_auth_service().sign_out(session.access_token)
    return {"success": True, "message": "Signed out"}


@app.get(
    "/auth/session",
    response_model=SessionResponse,
    responses=ERROR_RESPONSES,
    tags=["Auth"],
)
async def current_session(
    session: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    return await session_response(db, session.user_id, session.email, session.access_token)


# =============================================================================
# CATALOG ENDPOINTS
# =============================================================================

@app.get("/api/branches", response_model=list[BranchResponse], tags=["Catalog"])
async def list_branches(db: AsyncSession = Depends(get_db)) -> list[BranchResponse]:
    branches = await store.list_branches(db, ANONYMOUS)
    return [BranchResponse.model_validate(branch) for branch in branches]


@app.get("/api/menu/categories", response_model=list[CategoryResponse], tags=["Catalog"])
async def list_categories(db: AsyncSession = Depends(get_db)) -> list[CategoryResponse]:
    categories = await store.list_categories(db, ANONYMOUS)
    return [CategoryResponse.model_validate(category) for category in categories]


@app.get("/api/menu", response_model=list[MenuItemResponse], tags=["Catalog"])
async def list_menu(
    category_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[MenuItemResponse]:
    """Available menu items, optionally for one category."""
    items = await store.list_menu(db, ANONYMOUS, category_id=category_id)
    return [MenuItemResponse.model_validate(item) for item in items]


# =============================================================================
# CART & CHECKOUT ENDPOINTS
# =============================================================================

@app.post(
    "/api/cart/quote",
    response_model=PriceBreakdownResponse,
    responses=ERROR_RESPONSES,
    tags=["Cart"],
)
async def quote_cart(
    data: CartQuoteRequest,
    db: AsyncSession = Depends(get_db),
) -> PriceBreakdownResponse:
    """Price a cart the way checkout would, without writing anything."""
    cart = await build_cart(db, ANONYMOUS, data)
    pricing = price_cart(
        cart, data.order_type, settings.tax_rate, settings.delivery_fee, data.tip,
    )
    return PriceBreakdownResponse(
        subtotal=pricing.subtotal,
        tax=pricing.tax,
        delivery_fee=pricing.delivery_fee,
        tip=pricing.tip,
        total=pricing.total,
        item_count=cart.count(),
        line_count=len(cart),
    )


@app.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Checkout",
)
async def create_order(
    data: CheckoutRequest,
    ctx: AccessContext = Depends(get_access_context),
    db: AsyncSession = Depends(get_db),
) -> OrderCreateResponse:
    """
    Place an order for the submitted cart.

    Nothing is written when the branch is missing, the cart is empty or
    a delivery order has no address.
    """
    cart = await build_cart(db, ctx, data)
    address = validate_checkout(cart, data.order_type, data.delivery_address, data.branch_id)
    pricing = price_cart(
        cart, data.order_type, settings.tax_rate, settings.delivery_fee, data.tip,
    )

    order = await store.create_order(
        db,
        ctx,
        branch_id=data.branch_id,
        cart=cart,
        order_type=data.order_type,
        pricing=pricing,
        delivery_address=address,
        notes=(data.notes or "").strip() or None,
        feed=get_change_feed(),
    )

    return OrderCreateResponse(
        success=True,
        message="Order placed successfully!",
        order=OrderResponse.from_order(order, Actor.CUSTOMER),
    )


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="My Orders",
)
async def list_my_orders(
    ctx: AccessContext = Depends(get_access_context),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """The caller's orders, newest first."""
    return order_list(await store.list_customer_orders(db, ctx), Actor.CUSTOMER)


@app.get(
    "/api/orders/stream",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/event-stream": {}}}},
    tags=["Orders"],
    summary="Live My Orders",
)
async def stream_my_orders(
    ctx: AccessContext = Depends(get_access_context),
) -> StreamingResponse:
    user_id = str(ctx.user_id)
    return stream_orders(
        lambda db: store.list_customer_orders(db, ctx),
        Actor.CUSTOMER,
        lambda event: event.user_id in (None, user_id),
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: uuid.UUID,
    ctx: AccessContext = Depends(get_access_context),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await store.get_order(db, ctx, order_id)
    actor = Actor.CUSTOMER if order.user_id == ctx.user_id else Actor.STAFF
    return OrderResponse.from_order(order, actor)


@app.patch(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def update_order(
    order_id: uuid.UUID,
    data: OrderUpdateRequest,
    ctx: AccessContext = Depends(get_access_context),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Edit notes or delivery address while the order is still pending."""
    order = await store.update_customer_order(
        db,
        ctx,
        order_id,
        notes=data.notes,
        delivery_address=data.delivery_address,
        feed=get_change_feed(),
    )
    return OrderResponse.from_order(order, Actor.CUSTOMER)


@app.post(
    "/api/orders/{order_id}/cancel",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def cancel_order(
    order_id: uuid.UUID,
    ctx: AccessContext = Depends(get_access_context),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await store.update_order_status(
        db, ctx, order_id, OrderStatus.CANCELLED, Actor.CUSTOMER, feed=get_change_feed(),
    )
    return OrderResponse.from_order(order, Actor.CUSTOMER)


# =============================================================================
# STAFF ENDPOINTS
# =============================================================================

@app.get(
    "/api/staff/orders",
    response_model=OrderListResponse,
    responses=ERROR_RESPONSES,
    tags=["Staff"],
    summary="Branch Orders",
)
async def list_branch_orders(
    ctx: AccessContext = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Orders in progress at the caller's branch, newest first."""
    return order_list(await store.list_branch_orders(db, ctx), Actor.STAFF)


@app.get(
    "/api/staff/orders/stream",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/event-stream": {}}}},
    tags=["Staff"],
    summary="Live Branch Orders",
)
async def stream_branch_orders(
    ctx: AccessContext = Depends(require_staff),
) -> StreamingResponse:
    if ctx.staff_branch_id is None:
        raise AuthorizationError(
            "You are not assigned to any branch yet. Please contact an administrator."
        )
    branch_id = str(ctx.staff_branch_id)
    return stream_orders(
        lambda db: store.list_branch_orders(db, ctx),
        Actor.STAFF,
        lambda event: event.branch_id in (None, branch_id),
    )


@app.get(
    "/api/staff/orders/{order_id}/transitions",
    response_model=TransitionsResponse,
    responses=ERROR_RESPONSES,
    tags=["Staff"],
)
async def order_transitions(
    order_id: uuid.UUID,
    ctx: AccessContext = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> TransitionsResponse:
    """Statuses staff may move this order to."""
    order = await store.get_order(db, ctx, order_id)
    return TransitionsResponse(
        order_id=order.id,
        order_type=order.order_type,
        status=order.status,
        allowed=(
            allowed_transitions(order.order_type, order.status, Actor.STAFF)
            if staff_of_branch(ctx, order) else []
        ),
    )


@app.patch(
    "/api/staff/orders/{order_id}/status",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Staff"],
)
async def update_order_status(
    order_id: uuid.UUID,
    data: StatusUpdateRequest,
    ctx: AccessContext = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await store.update_order_status(
        db, ctx, order_id, data.status, Actor.STAFF, feed=get_change_feed(),
    )
    return OrderResponse.from_order(order, Actor.STAFF)


# =============================================================================
# ADMIN ENDPOINTS
# =============================================================================

@app.post(
    "/api/admin/staff",
    response_model=StaffAssignmentResponse,
    responses=ERROR_RESPONSES,
    tags=["Admin"],
)
async def assign_staff(
    data: StaffAssignmentRequest,
    ctx: AccessContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffAssignmentResponse:
    """Make a user staff of a branch, moving them if already assigned."""
    assignment = await store.assign_staff(
        db,
        ctx,
        user_id=data.user_id,
        branch_id=data.branch_id,
        salary=data.salary,
        working_hours=data.working_hours,
    )
    return StaffAssignmentResponse.model_validate(assignment)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def error_response(
    status_code: int,
    error: str,
    detail: Optional[str] = None,
    fields: Optional[dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail, fields=fields).model_dump(),
    )


@app.exception_handler(OrderingError)
async def ordering_exception_handler(request: Request, exc: OrderingError) -> JSONResponse:
    """Render every user-facing error through the same response shape."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return error_response(
        exc.status_code, exc.title, exc.message, getattr(exc, "fields", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
        message = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        fields.setdefault(".".join(loc) or "body", message)

    first = next(iter(fields.values()), "Invalid request")
    return error_response(422, "Validation failed", first, fields)


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
@app.exception_handler(httpx.HTTPError)
@app.exception_handler(redis.RedisError)
async def collaborator_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """A collaborator is unreachable; the request did not take effect."""
    logger.error(f"Collaborator unavailable during {request.method} {request.url.path}: {exc}")
    return error_response(
        503,
        "Service unavailable",
        str(exc) if settings.debug else "A backing service is unavailable. Please try again",
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return error_response(
        500,
        "Internal Server Error",
        str(exc) if settings.debug else "An unexpected error occurred",
    )

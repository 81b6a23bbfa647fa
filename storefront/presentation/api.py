from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from storefront.config import settings
from storefront.domain.models import ProductCategory
from storefront.presentation.dependencies import (
    RequestContext, get_uow, get_payment_gateway, get_request_context, get_admin_context, verify_api_key
)
from storefront.presentation.schemas import (
    ProductResponse, ProductPageResponse, ProductDetailResponse, HomePageResponse,
    RegisterUserRequest, UserResponse,
    AddToCartRequest, UpdateCartItemRequest, CartResponse, CartLineResponse,
    CreatePaymentOrderRequest, PaymentOrderResponse, VerifyPaymentRequest, VerifyPaymentResponse,
    OrderResponse, UpdateOrderStatusRequest, DashboardResponse, ErrorResponse
)
from storefront.application.catalog import ListProductsUseCase, GetProductUseCase, HomePageUseCase
from storefront.application.users import (
    RegisterUserUseCase, RegisterUserDTO, UpdateProfileUseCase, UpdateProfileDTO
)
from storefront.application.cart import (
    AddToCartUseCase, UpdateCartItemUseCase, RemoveFromCartUseCase, ViewCartUseCase
)
from storefront.application.create_payment_order import CreatePaymentOrderUseCase
from storefront.application.verify_payment import VerifyPaymentUseCase, PaymentVerificationDTO
from storefront.application.get_order import GetOrderUseCase, ListUserOrdersUseCase
from storefront.application.admin import (
    DashboardUseCase, ListAllOrdersUseCase, UpdateOrderStatusUseCase, ListAllProductsUseCase,
    CreateProductUseCase, UpdateProductUseCase, ToggleProductUseCase, DeleteProductUseCase,
    CreateProductDTO, UpdateProductDTO
)
from storefront.infrastructure.unit_of_work import UnitOfWork

router = APIRouter(dependencies=[Depends(verify_api_key)])
admin_router = APIRouter(prefix="/admin", dependencies=[Depends(verify_api_key)])


# Use case factories
def get_create_payment_order_use_case(uow: UnitOfWork = Depends(get_uow), gateway=Depends(get_payment_gateway)):
    return CreatePaymentOrderUseCase(uow, gateway, settings.CURRENCY)


def get_verify_payment_use_case(uow: UnitOfWork = Depends(get_uow)):
    return VerifyPaymentUseCase(uow, settings.RAZORPAY_KEY_SECRET, settings.ALLOW_NEGATIVE_STOCK)


def get_list_products_use_case(uow: UnitOfWork = Depends(get_uow)):
    return ListProductsUseCase(uow, settings.PRODUCTS_PAGE_SIZE)


# Catalog

@router.get("/home", response_model=HomePageResponse)
async def home(uow: UnitOfWork = Depends(get_uow)):
    page = await HomePageUseCase(uow)()
    return HomePageResponse(
        featured=[ProductResponse.from_domain(p) for p in page.featured],
        latest=[ProductResponse.from_domain(p) for p in page.latest],
        categories=page.categories
    )


@router.get("/products", response_model=ProductPageResponse)
async def list_products(
    category: Optional[ProductCategory] = None,
    search: Optional[str] = None,
    sort: str = "newest",
    page: int = Query(default=1, ge=1),
    use_case: ListProductsUseCase = Depends(get_list_products_use_case)
):
    result = await use_case(category=category, search=search, sort=sort, page=page)
    return ProductPageResponse(
        products=[ProductResponse.from_domain(p) for p in result.products],
        total=result.total,
        page=result.page,
        total_pages=result.total_pages,
        categories=result.categories
    )


@router.get(
    "/products/{product_id}",
    response_model=ProductDetailResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_product(product_id: str, uow: UnitOfWork = Depends(get_uow)):
    detail = await GetProductUseCase(uow)(product_id)
    return ProductDetailResponse(
        product=ProductResponse.from_domain(detail.product),
        related=[ProductResponse.from_domain(p) for p in detail.related]
    )


# Registration

@router.post(
    "/users",
    response_model=UserResponse,
    responses={409: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def register_user(request: RegisterUserRequest, uow: UnitOfWork = Depends(get_uow)):
    user = await RegisterUserUseCase(uow)(RegisterUserDTO(**request.model_dump()))
    return UserResponse.from_domain(user)


@router.get("/users/me", response_model=UserResponse)
async def my_profile(ctx: RequestContext = Depends(get_request_context)):
    return UserResponse.from_domain(ctx.user)


@router.patch(
    "/users/me",
    response_model=UserResponse,
    responses={409: {"model": ErrorResponse}}
)
async def update_my_profile(
    request: UpdateProfileDTO,
    ctx: RequestContext = Depends(get_request_context),
    uow: UnitOfWork = Depends(get_uow)
):
    user = await UpdateProfileUseCase(uow)(ctx.user_id, request)
    return UserResponse.from_domain(user)


# Cart

@router.get("/cart", response_model=CartResponse)
async def view_cart(ctx: RequestContext = Depends(get_request_context), uow: UnitOfWork = Depends(get_uow)):
    cart = await ViewCartUseCase(uow)(ctx.user_id)
    return CartResponse(
        lines=[
            CartLineResponse(
                product=ProductResponse.from_domain(line.product),
                quantity=line.quantity,
                subtotal=line.product.effective_price * line.quantity
            )
            for line in cart.lines
        ],
        total=cart.total
    )


@router.post(
    "/cart/items",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}
)
async def add_to_cart(
    request: AddToCartRequest,
    ctx: RequestContext = Depends(get_request_context),
    uow: UnitOfWork = Depends(get_uow)
):
    await AddToCartUseCase(uow)(ctx.user_id, request.product_id, request.quantity)


@router.patch("/cart/items/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_cart_item(
    product_id: str,
    request: UpdateCartItemRequest,
    ctx: RequestContext = Depends(get_request_context),
    uow: UnitOfWork = Depends(get_uow)
):
    await UpdateCartItemUseCase(uow)(ctx.user_id, product_id, request.quantity)


@router.delete("/cart/items/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_from_cart(
    product_id: str,
    ctx: RequestContext = Depends(get_request_context),
    uow: UnitOfWork = Depends(get_uow)
):
    await RemoveFromCartUseCase(uow)(ctx.user_id, product_id)


# Checkout

@router.post(
    "/checkout/create-order",
    response_model=PaymentOrderResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def create_payment_order(
    request: CreatePaymentOrderRequest,
    ctx: RequestContext = Depends(get_request_context),
    use_case: CreatePaymentOrderUseCase = Depends(get_create_payment_order_use_case)
):
    """Initiate checkout: returns the handle for the payment widget"""
    handle = await use_case(ctx.user_id, request.to_address())
    return PaymentOrderResponse(**handle.model_dump())


@router.post(
    "/checkout/verify-payment",
    response_model=VerifyPaymentResponse,
    responses={400: {"model": VerifyPaymentResponse}, 404: {"model": ErrorResponse}}
)
async def verify_payment(
    request: VerifyPaymentRequest,
    ctx: RequestContext = Depends(get_request_context),
    use_case: VerifyPaymentUseCase = Depends(get_verify_payment_use_case)
):
    """Confirm payment with the ids and signature the widget returned"""
    dto = PaymentVerificationDTO(
        order_id=request.order_id,
        gateway_order_id=request.razorpay_order_id,
        gateway_payment_id=request.razorpay_payment_id,
        signature=request.razorpay_signature
    )
    result = await use_case(ctx.user_id, dto)
    response = VerifyPaymentResponse(success=result.success, reason=result.reason, order_id=result.order_id)
    if not result.success:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=response.model_dump())
    return response


# Orders

@router.get("/orders", response_model=List[OrderResponse])
async def my_orders(ctx: RequestContext = Depends(get_request_context), uow: UnitOfWork = Depends(get_uow)):
    orders = await ListUserOrdersUseCase(uow)(ctx.user_id)
    return [OrderResponse.from_domain(o) for o in orders]


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_order(
    order_id: str,
    ctx: RequestContext = Depends(get_request_context),
    uow: UnitOfWork = Depends(get_uow)
):
    order = await GetOrderUseCase(uow)(ctx.user_id, order_id)
    return OrderResponse.from_domain(order)


# Admin

@admin_router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(_: RequestContext = Depends(get_admin_context), uow: UnitOfWork = Depends(get_uow)):
    data = await DashboardUseCase(uow)()
    return DashboardResponse(
        total_products=data.total_products,
        total_orders=data.total_orders,
        total_users=data.total_users,
        recent_orders=[OrderResponse.from_domain(o) for o in data.recent_orders],
        total_revenue=data.total_revenue
    )


@admin_router.get("/orders", response_model=List[OrderResponse])
async def all_orders(_: RequestContext = Depends(get_admin_context), uow: UnitOfWork = Depends(get_uow)):
    orders = await ListAllOrdersUseCase(uow)()
    return [OrderResponse.from_domain(o) for o in orders]


@admin_router.patch(
    "/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}}
)
async def update_order_status(
    order_id: str,
    request: UpdateOrderStatusRequest,
    _: RequestContext = Depends(get_admin_context),
    uow: UnitOfWork = Depends(get_uow)
):
    order = await UpdateOrderStatusUseCase(uow)(order_id, request.status)
    return OrderResponse.from_domain(order)


@admin_router.get("/products", response_model=List[ProductResponse])
async def all_products(_: RequestContext = Depends(get_admin_context), uow: UnitOfWork = Depends(get_uow)):
    products = await ListAllProductsUseCase(uow)()
    return [ProductResponse.from_domain(p) for p in products]


@admin_router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    request: CreateProductDTO,
    _: RequestContext = Depends(get_admin_context),
    uow: UnitOfWork = Depends(get_uow)
):
    product = await CreateProductUseCase(uow)(request)
    return ProductResponse.from_domain(product)


@admin_router.patch(
    "/products/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}}
)
async def update_product(
    product_id: str,
    request: UpdateProductDTO,
    _: RequestContext = Depends(get_admin_context),
    uow: UnitOfWork = Depends(get_uow)
):
    product = await UpdateProductUseCase(uow)(product_id, request)
    return ProductResponse.from_domain(product)


@admin_router.post(
    "/products/{product_id}/toggle",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}}
)
async def toggle_product(
    product_id: str,
    _: RequestContext = Depends(get_admin_context),
    uow: UnitOfWork = Depends(get_uow)
):
    product = await ToggleProductUseCase(uow)(product_id)
    return ProductResponse.from_domain(product)


@admin_router.delete(
    "/products/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}}
)
async def delete_product(
    product_id: str,
    _: RequestContext = Depends(get_admin_context),
    uow: UnitOfWork = Depends(get_uow)
):
    await DeleteProductUseCase(uow)(product_id)

import math
from typing import List, Optional
from pydantic import BaseModel

from storefront.domain.models import Product, ProductCategory
from storefront.domain.exceptions import ProductNotFoundError
from storefront.application.interfaces import ProductQuery


class ProductPage(BaseModel):
    products: List[Product]
    total: int
    page: int
    total_pages: int
    categories: List[str]


class ProductDetail(BaseModel):
    product: Product
    related: List[Product]


class HomePage(BaseModel):
    featured: List[Product]
    latest: List[Product]
    categories: List[str]


class ListProductsUseCase:
    def __init__(self, unit_of_work, page_size: int = 12):
        self._uow = unit_of_work
        self._page_size = page_size

    async def __call__(
        self,
        category: Optional[ProductCategory] = None,
        search: Optional[str] = None,
        sort: str = "newest",
        page: int = 1
    ) -> ProductPage:
        page = max(page, 1)
        query = ProductQuery(
            category=category,
            search=search or None,
            sort=sort,
            offset=(page - 1) * self._page_size,
            limit=self._page_size
        )
        async with self._uow() as uow:
            total = await uow.products.count(query)
            products = await uow.products.find(query)
            categories = await uow.products.categories()

        return ProductPage(
            products=products,
            total=total,
            page=page,
            total_pages=math.ceil(total / self._page_size),
            categories=categories
        )


class GetProductUseCase:
    def __init__(self, unit_of_work, related_limit: int = 4):
        self._uow = unit_of_work
        self._related_limit = related_limit

    async def __call__(self, product_id: str) -> ProductDetail:
        async with self._uow() as uow:
            product = await uow.products.get_by_id(product_id)
            if not product or not product.is_active:
                raise ProductNotFoundError(f"Product {product_id} not found")

            related = await uow.products.find(ProductQuery(
                category=product.category,
                exclude_id=product.id,
                limit=self._related_limit
            ))
        return ProductDetail(product=product, related=related)


class HomePageUseCase:
    def __init__(self, unit_of_work, limit: int = 8):
        self._uow = unit_of_work
        self._limit = limit

    async def __call__(self) -> HomePage:
        async with self._uow() as uow:
            featured = await uow.products.find(ProductQuery(featured_only=True, limit=self._limit))
            latest = await uow.products.find(ProductQuery(sort="newest", limit=self._limit))
            categories = await uow.products.categories()
        return HomePage(featured=featured, latest=latest, categories=categories)

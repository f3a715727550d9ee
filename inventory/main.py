# inventory/main.py
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import structlog
import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .core import CategoryFilter, CategoryIn, Page, PageRequest, ProductFilter, ProductIn, Sort
from .database import CatalogStore
from .errors import (
    CatalogError, ConflictingState, DuplicateName, DuplicateSku, InvalidInput, NotFound
)
from .logging_config import configure_logging
from .models import Category, Product
from .service import CatalogService

logger = structlog.get_logger(__name__)

# ---------------------------
# In-memory store (session)
# ---------------------------
store = CatalogStore()
catalog = CatalogService(store, settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    logger.info("catalog_started", service=settings.SERVICE_NAME, port=settings.SERVICE_PORT)
    yield
    logger.info("catalog_stopped", service=settings.SERVICE_NAME)


app = FastAPI(title="inventory-catalog (in-memory)", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_CODES = {
    InvalidInput: 400,
    NotFound: 404,
    DuplicateSku: 409,
    DuplicateName: 409,
    ConflictingState: 409,
}


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    status_code = _STATUS_CODES.get(type(exc), 400)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # report the first offending field the same way the validation layer does
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = first.get("loc") or ("request",)
    error = InvalidInput(str(loc[-1]), first.get("msg", "Invalid request"))
    logger.info("request_rejected", path=request.url.path, field=error.field, error=error.code)
    return JSONResponse(status_code=400, content=jsonable_encoder(error.to_dict()))


# ---------------------------
# Query parameter binding
# ---------------------------
def page_params(page: int = 0, size: int = settings.DEFAULT_PAGE_SIZE) -> PageRequest:
    return PageRequest(page=page, size=size)


def sort_params(sort_by: str = "name", direction: str = "asc") -> Sort:
    return Sort(field=sort_by, direction=direction)


def product_filter_params(
    keyword: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    quantity_below: Optional[int] = None,
    out_of_stock: bool = False,
    min_quantity: Optional[int] = None,
    max_quantity: Optional[int] = None,
    category_ids: Optional[List[int]] = Query(None),
    category_name: Optional[str] = None,
    uncategorized: bool = False,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
) -> ProductFilter:
    return ProductFilter(
        keyword=keyword,
        min_price=min_price,
        max_price=max_price,
        quantity_below=quantity_below,
        out_of_stock=out_of_stock,
        min_quantity=min_quantity,
        max_quantity=max_quantity,
        category_ids=category_ids,
        category_name=category_name,
        uncategorized=uncategorized,
        created_from=created_from,
        created_to=created_to,
    )


def category_filter_params(
    name: Optional[str] = None,
    keyword: Optional[str] = None,
    min_products: Optional[int] = None,
    max_products: Optional[int] = None,
    empty: bool = False,
    low_stock_below: Optional[int] = None,
    has_out_of_stock: bool = False,
) -> CategoryFilter:
    return CategoryFilter(
        name=name,
        keyword=keyword,
        min_products=min_products,
        max_products=max_products,
        empty=empty,
        low_stock_below=low_stock_below,
        has_out_of_stock=has_out_of_stock,
    )


# ---------------------------
# Product endpoints
# ---------------------------
@app.post("/products", status_code=201, response_model=Product)
async def create_product(payload: ProductIn):
    return await catalog.create_product(payload)


@app.get("/products", response_model=Page[Product])
async def list_products(
    flt: ProductFilter = Depends(product_filter_params),
    sort: Sort = Depends(sort_params),
    page: PageRequest = Depends(page_params),
):
    return await catalog.list_products(flt, sort, page)


@app.get("/products/search", response_model=Page[Product])
async def search_products(
    keyword: str = Query(...),
    sort: Sort = Depends(sort_params),
    page: PageRequest = Depends(page_params),
):
    return await catalog.list_products(ProductFilter(keyword=keyword), sort, page)


@app.get("/products/low-stock", response_model=Page[Product])
async def low_stock_products(
    threshold: Optional[int] = None,
    sort: Sort = Depends(sort_params),
    page: PageRequest = Depends(page_params),
):
    return await catalog.low_stock_products(threshold, sort, page)


@app.get("/products/out-of-stock", response_model=List[Product])
async def out_of_stock_products():
    return await catalog.out_of_stock_products()


@app.get("/products/uncategorized", response_model=List[Product])
async def uncategorized_products():
    return await catalog.uncategorized_products()


@app.get("/products/price-range", response_model=Page[Product])
async def products_by_price_range(
    min_price: Decimal,
    max_price: Decimal,
    sort_by: str = "price",
    direction: str = "asc",
    page: PageRequest = Depends(page_params),
):
    flt = ProductFilter(min_price=min_price, max_price=max_price)
    return await catalog.list_products(flt, Sort(field=sort_by, direction=direction), page)


@app.get("/products/by-categories", response_model=Page[Product])
async def products_by_categories(
    category_ids: List[int] = Query(...),
    sort: Sort = Depends(sort_params),
    page: PageRequest = Depends(page_params),
):
    return await catalog.list_products(ProductFilter(category_ids=category_ids), sort, page)


@app.get("/products/by-category-name", response_model=Page[Product])
async def products_by_category_name(
    category: str = Query(...),
    sort: Sort = Depends(sort_params),
    page: PageRequest = Depends(page_params),
):
    return await catalog.list_products(ProductFilter(category_name=category), sort, page)


@app.get("/products/{product_id}", response_model=Product)
async def get_product(product_id: int):
    return await catalog.get_product(product_id)


@app.put("/products/{product_id}", response_model=Product)
async def update_product(product_id: int, payload: ProductIn):
    return await catalog.update_product(product_id, payload)


@app.delete("/products/{product_id}")
async def delete_product(product_id: int):
    await catalog.delete_product(product_id)
    return {"status": "deleted", "id": product_id}


# ---------------------------
# Category endpoints
# ---------------------------
@app.post("/categories", status_code=201, response_model=Category)
async def create_category(payload: CategoryIn):
    return await catalog.create_category(payload)


@app.get("/categories", response_model=Page[Category])
async def list_categories(
    flt: CategoryFilter = Depends(category_filter_params),
    sort: Sort = Depends(sort_params),
    page: PageRequest = Depends(page_params),
):
    return await catalog.list_categories(flt, sort, page)


@app.get("/categories/search", response_model=Page[Category])
async def search_categories(
    name: str = Query(...),
    sort: Sort = Depends(sort_params),
    page: PageRequest = Depends(page_params),
):
    return await catalog.list_categories(CategoryFilter(name=name), sort, page)


@app.get("/categories/empty", response_model=Page[Category])
async def empty_categories(
    sort: Sort = Depends(sort_params),
    page: PageRequest = Depends(page_params),
):
    return await catalog.empty_categories(sort, page)


@app.get("/categories/low-stock", response_model=Page[Category])
async def categories_with_low_stock(
    threshold: Optional[int] = None,
    sort: Sort = Depends(sort_params),
    page: PageRequest = Depends(page_params),
):
    return await catalog.categories_with_low_stock(threshold, sort, page)


@app.get("/categories/{category_id}", response_model=Category)
async def get_category(category_id: int):
    return await catalog.get_category(category_id)


@app.put("/categories/{category_id}", response_model=Category)
async def update_category(category_id: int, payload: CategoryIn):
    return await catalog.update_category(category_id, payload)


@app.delete("/categories/{category_id}")
async def delete_category(category_id: int):
    await catalog.delete_category(category_id)
    return {"status": "deleted", "id": category_id}


# ---------------------------
# Utility: reset (for tests/demo)
# ---------------------------
@app.post("/reset")
async def reset_all():
    store.clear()
    logger.info("store_reset")
    return {"status": "reset"}


@app.get("/health")
async def health():
    return {"status": "ok", "service": settings.SERVICE_NAME}


def run():
    uvicorn.run(
        "inventory.main:app",
        host=settings.SERVICE_HOST,
        port=settings.SERVICE_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()

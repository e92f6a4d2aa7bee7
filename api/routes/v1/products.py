"""
api/routes/v1/products.py -- Role-gated product catalog routes.

Routes (in registration order):
  GET    /products                 -- list products (public, ?merchant_id= filter)
  POST   /products                 -- create product (merchant only)
  GET    /products/{product_id}    -- product detail (public)
  DELETE /products/{product_id}    -- delete own product (merchant only)

Role gating uses require_merchant from auth/dependencies.py: no identity is
401, a client or a user who has not chosen a role yet is 403.

IDOR guard: DELETE passes the caller's id to the store; the store's WHERE
clause requires both product id and merchant id to match, so a merchant
cannot delete another merchant's product even if they know its id.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.limiter import limiter
from api.models import ProductCreate, ProductResponse
from auth.dependencies import require_merchant
from auth.models import User
from catalog.models import Product
from catalog.store import ProductStore

router = APIRouter()


@limiter.limit("60/minute")
@router.get("/products", response_model=list[ProductResponse])
def list_products(request: Request, merchant_id: Optional[int] = None) -> list[ProductResponse]:
    """Return all products, newest first."""
    catalog: ProductStore = request.app.state.catalog
    return [ProductResponse.from_product(p) for p in catalog.list_products(merchant_id=merchant_id)]


@limiter.limit("30/minute")
@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(
    request: Request,
    body: ProductCreate,
    current_user: User = Depends(require_merchant),
) -> ProductResponse:
    """List a new product under the calling merchant."""
    catalog: ProductStore = request.app.state.catalog
    product = catalog.create_product(
        Product(
            merchant_id=current_user.id,
            name=body.name,
            description=body.description,
            price_cents=body.price_cents,
        )
    )
    return ProductResponse.from_product(product)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(request: Request, product_id: int) -> ProductResponse:
    catalog: ProductStore = request.app.state.catalog
    product = catalog.get_product(product_id)
    if product is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Product not found."},
        )
    return ProductResponse.from_product(product)


@router.delete("/products/{product_id}", status_code=204)
def delete_product(
    request: Request,
    product_id: int,
    current_user: User = Depends(require_merchant),
) -> Response:
    """Delete a product. Ownership is verified by the store [IDOR guard]."""
    catalog: ProductStore = request.app.state.catalog
    if not catalog.delete_product(product_id, merchant_id=current_user.id):
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Product not found."},
        )
    return Response(status_code=204)

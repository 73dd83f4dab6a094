# catalog_service/main.py

"""
FastAPI Catalog Service API.
Admin surface for the product catalog: listing products by category,
issuing image upload locations, and creating, editing and deleting products.
Every catalog route requires an authenticated caller.
"""
import os
import logging
import sys
import time
from typing import List

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, joinedload

from . import storage
from .auth import get_current_caller
from .db import Base, engine, get_db
from .models import Category, Product
from .schemas import (
    CategoryResponse,
    ImageUploadLocationResponse,
    ProductCreate,
    ProductEdit,
    ProductResponse,
    ProductWithCategoryResponse,
)

# -----------------------------
# Configure Logging
# -----------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

# Suppress noisy logs from third-party libraries for cleaner output
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.INFO)
logging.getLogger("azure").setLevel(logging.WARNING)

DB_CONNECT_MAX_RETRIES = int(os.getenv("DB_CONNECT_MAX_RETRIES", "10"))
DB_CONNECT_RETRY_SECONDS = int(os.getenv("DB_CONNECT_RETRY_SECONDS", "5"))

# Reserved category filter value meaning "no filter".
ALL_CATEGORIES = "ALL"

if storage.is_configured():
    logger.info("Catalog Service: Azure environment variables populated correctly.")
else:
    logger.info("Catalog Service: Azure environment variables **NOT SET**")


# -----------------------------
# FastAPI App Initialization
# -----------------------------
app = FastAPI(
    title="Catalog Service API",
    description="Manages the product catalog for the admin dashboard",
    version="1.0.0",
)

# Enable CORS (for frontend dev/testing)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Use specific origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- FastAPI Event Handlers ---
@app.on_event("startup")
async def startup_event():
    """
    Ensures database tables exist, retrying while the database comes up.
    """
    for i in range(DB_CONNECT_MAX_RETRIES):
        try:
            logger.info(
                f"Attempting to connect to the database and create tables (attempt {i+1}/{DB_CONNECT_MAX_RETRIES})..."
            )
            Base.metadata.create_all(bind=engine)
            logger.info("Successfully connected to the database and ensured tables exist.")
            break
        except OperationalError as e:
            logger.warning(f"Failed to connect to the database: {e}")
            if i < DB_CONNECT_MAX_RETRIES - 1:
                logger.info(f"Retrying in {DB_CONNECT_RETRY_SECONDS} seconds...")
                time.sleep(DB_CONNECT_RETRY_SECONDS)
            else:
                logger.critical(
                    f"Failed to connect to the database after {DB_CONNECT_MAX_RETRIES} attempts. Exiting application."
                )
                sys.exit(1)
        except Exception as e:
            logger.critical(
                f"An unexpected error occurred during database startup: {e}",
                exc_info=True,
            )
            sys.exit(1)


# --- Root Endpoint ---
@app.get("/", status_code=status.HTTP_200_OK, summary="Root endpoint")
async def read_root():
    """
    Returns a welcome message for the Catalog Service.
    """
    return {"message": "Welcome to the Catalog Service!"}


# --- Health Check Endpoint ---
@app.get("/health", status_code=status.HTTP_200_OK, summary="Health check endpoint")
async def health_check():
    return {"status": "ok", "service": "catalog-service"}


# -----------------------------
# Catalog Endpoints (authenticated)
# -----------------------------
products_router = APIRouter(
    prefix="/products",
    tags=["products"],
    dependencies=[Depends(get_current_caller)],
)
categories_router = APIRouter(
    prefix="/categories",
    tags=["categories"],
    dependencies=[Depends(get_current_caller)],
)


def _get_product_or_404(db: Session, product_id: str, action: str) -> Product:
    product = (
        db.query(Product)
        .options(joinedload(Product.category))
        .filter(Product.id == product_id)
        .first()
    )
    if not product:
        logger.warning(f"Product with ID: {product_id} not found for {action}.")
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _raise_category_integrity_error(db: Session, category_id: str, e: IntegrityError):
    db.rollback()
    logger.warning(f"Integrity error writing product with category_id={category_id}: {e.orig}")
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Category does not exist",
    )


@categories_router.get(
    "/",
    response_model=List[CategoryResponse],
    summary="List all categories",
)
def list_categories(db: Session = Depends(get_db)):
    """
    Returns every category, used to populate the filter and selection controls.
    """
    categories = db.query(Category).order_by(Category.name).all()
    logger.info(f"Retrieved {len(categories)} categories.")
    return categories


@products_router.get(
    "/",
    response_model=List[ProductWithCategoryResponse],
    summary="List products, optionally filtered by category",
)
def list_products(
    db: Session = Depends(get_db),
    category_id: str = Query(
        ALL_CATEGORIES,
        min_length=1,
        description=f"Category to filter by; '{ALL_CATEGORIES}' returns every product.",
    ),
):
    """
    Retrieves the full matching set of products, each joined with its
    category's `id` and `name`. There is no pagination.
    """
    logger.info(f"Listing products with category_id='{category_id}'")
    query = db.query(Product).options(joinedload(Product.category))
    if category_id != ALL_CATEGORIES:
        query = query.filter(Product.category_id == category_id)
    products = query.order_by(Product.created_at, Product.id).all()
    logger.info(f"Retrieved {len(products)} products (category_id='{category_id}').")
    return products


@products_router.post(
    "/image-upload-url",
    response_model=ImageUploadLocationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a signed upload location for a product image",
)
def create_product_image_upload_url():
    """
    Issues a short-lived, write-only location in object storage. The client
    uploads the image bytes there directly, then submits the returned
    `image_url` when creating or editing a product.
    """
    try:
        return storage.create_signed_upload_location()
    except storage.StorageError as e:
        logger.error(f"Error issuing image upload location: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not issue image upload location.",
        )


@products_router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
)
def create_product(product: ProductCreate, db: Session = Depends(get_db)):
    """
    Creates a new product linked to an existing category.

    - The image must already be uploaded; `image_url` is stored as given.
    - Returns 409 if `category_id` does not reference an existing category.
    """
    logger.info(f"Creating product: {product.name}")
    db_product = Product(**product.model_dump())
    try:
        db.add(db_product)
        db.commit()
        db.refresh(db_product)
    except IntegrityError as e:
        _raise_category_integrity_error(db, product.category_id, e)
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating product: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not create product.",
        )
    logger.info(f"Product '{db_product.name}' (ID: {db_product.id}) created successfully.")
    return db_product


@products_router.get(
    "/{product_id}",
    response_model=ProductWithCategoryResponse,
    summary="Retrieve a product by ID",
)
def get_product(product_id: str, db: Session = Depends(get_db)):
    logger.info(f"Fetching product with ID: {product_id}")
    return _get_product_or_404(db, product_id, "retrieval")


@products_router.put(
    "/{product_id}",
    response_model=ProductWithCategoryResponse,
    summary="Replace an existing product",
)
def edit_product(product_id: str, edited: ProductEdit, db: Session = Depends(get_db)):
    """
    Replaces name, price, category and image of an existing product.

    - Every field must be resent; there is no partial update.
    - Returns the updated product joined with its category.
    - Returns 404 for an unknown product and 409 for an unknown category.
    """
    logger.info(f"Editing product with ID: {product_id} with data: {edited.model_dump()}")
    product = _get_product_or_404(db, product_id, "edit")

    for field, value in edited.model_dump().items():
        setattr(product, field, value)
    try:
        db.commit()
    except IntegrityError as e:
        _raise_category_integrity_error(db, edited.category_id, e)
    except Exception as e:
        db.rollback()
        logger.error(f"Error editing product {product_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not edit product.",
        )
    # Reload so the joined category reflects the new category_id.
    product = _get_product_or_404(db, product_id, "edit")
    logger.info(f"Product '{product.name}' (ID: {product_id}) edited successfully.")
    return product


@products_router.delete(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Delete a product by ID",
)
def delete_product(product_id: str, db: Session = Depends(get_db)):
    """
    Permanently removes a product and returns the record as it was before deletion.
    """
    logger.info(f"Attempting to delete product with ID: {product_id}")
    product = _get_product_or_404(db, product_id, "deletion")
    deleted = ProductResponse.model_validate(product)

    try:
        db.delete(product)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting product {product_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while deleting the product.",
        )
    logger.info(f"Product (ID: {product_id}) deleted successfully.")
    return deleted


app.include_router(categories_router)
app.include_router(products_router)

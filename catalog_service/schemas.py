# catalog_service/schemas.py

"""
Pydantic schemas for the catalog service API.
These define the data structures for incoming requests and outgoing responses,
ensuring data validation and clear API contracts.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
)

# Largest value the BIGINT price column can hold.
MAX_PRICE = 2**63 - 1

_any_url = TypeAdapter(AnyUrl)


def _check_absolute_url(value: str) -> str:
    # Validated as a URL but stored exactly as submitted, without normalization.
    try:
        _any_url.validate_python(value)
    except ValidationError:
        raise ValueError("Input should be a valid absolute URL")
    return value


AbsoluteUrl = Annotated[str, AfterValidator(_check_absolute_url)]


# Fields shared by create and edit. Edit resends every field, so there is no
# optional "update" variant.
class ProductBase(BaseModel):
    name: str = Field(..., min_length=3, max_length=50, description="Name of the product.")
    price: int = Field(..., ge=1000, le=MAX_PRICE, description="Price in the smallest currency unit. Minimum 1000.")
    category_id: str = Field(..., min_length=1, description="ID of an existing category.")
    image_url: AbsoluteUrl = Field(..., description="Absolute URL of the already uploaded product image.")


# Used in POST /products/ endpoint.
class ProductCreate(ProductBase):
    pass


# Used in PUT /products/{product_id} endpoint. Full replacement, all fields required.
class ProductEdit(ProductBase):
    pass


class CategoryResponse(BaseModel):
    id: str = Field(..., description="Unique identifier of the category.")
    name: str = Field(..., description="Display name of the category.")

    model_config = ConfigDict(from_attributes=True)


# Record shape returned by create and delete.
class ProductResponse(BaseModel):
    id: str = Field(..., description="Unique identifier of the product.")
    name: str
    price: int
    category_id: str
    image_url: str
    created_at: Optional[datetime] = Field(None, description="Timestamp when the product was created.")
    updated_at: Optional[datetime] = Field(None, description="Timestamp when the product was last updated.")

    model_config = ConfigDict(from_attributes=True)


# Record shape returned by list, get and edit: the category is joined in as {id, name}.
class ProductWithCategoryResponse(BaseModel):
    id: str
    name: str
    price: int
    image_url: str
    category: CategoryResponse

    model_config = ConfigDict(from_attributes=True)


class ImageUploadLocationResponse(BaseModel):
    signed_url: str = Field(..., description="URL the client PUTs the image bytes to.")
    path: str = Field(..., description="Blob name inside the image container.")
    token: str = Field(..., description="SAS token granting create/write on that blob only.")
    image_url: str = Field(..., description="Public URL to submit as image_url once the upload is done.")
    expires_at: datetime = Field(..., description="When the signed location stops accepting uploads.")

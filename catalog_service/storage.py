# catalog_service/storage.py

"""
Object storage gateway for product images.

The service never receives image bytes. It hands the client a short-lived
SAS token scoped to a single new blob, the client uploads directly to Azure
Blob Storage, and then submits the resulting blob URL on create/edit.
"""
import logging
import os
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from azure.storage.blob import BlobSasPermissions, generate_blob_sas

logger = logging.getLogger(__name__)

AZURE_STORAGE_ACCOUNT_NAME = os.getenv("AZURE_STORAGE_ACCOUNT_NAME")
AZURE_STORAGE_ACCOUNT_KEY = os.getenv("AZURE_STORAGE_ACCOUNT_KEY")
AZURE_STORAGE_CONTAINER_NAME = os.getenv(
    "AZURE_STORAGE_CONTAINER_NAME", "product-images"
)
AZURE_SAS_TOKEN_EXPIRY_HOURS = int(os.getenv("AZURE_SAS_TOKEN_EXPIRY_HOURS", "2"))
# Set for the Azurite emulator or a custom domain; defaults to the public endpoint.
AZURE_STORAGE_ACCOUNT_URL = os.getenv("AZURE_STORAGE_ACCOUNT_URL")

IMAGE_EXTENSION = "jpeg"


class StorageError(Exception):
    """Raised when an upload location cannot be issued."""


def is_configured() -> bool:
    return bool(AZURE_STORAGE_ACCOUNT_NAME and AZURE_STORAGE_ACCOUNT_KEY)


def _account_url() -> str:
    if AZURE_STORAGE_ACCOUNT_URL:
        return AZURE_STORAGE_ACCOUNT_URL.rstrip("/")
    return f"https://{AZURE_STORAGE_ACCOUNT_NAME}.blob.core.windows.net"


def generate_image_blob_name() -> str:
    """Timestamp-derived key with a fixed image extension."""
    return f"{int(time.time() * 1000)}.{IMAGE_EXTENSION}"


def create_signed_upload_location(blob_name: Optional[str] = None) -> dict:
    """
    Issues a signed, time-limited upload location for a new image blob.

    Returns a dict with `signed_url`, `path`, `token`, `image_url` and
    `expires_at`. Raises StorageError if credentials are missing or the
    token cannot be signed.
    """
    if not is_configured():
        raise StorageError("Azure storage account name/key are not configured.")

    blob_name = blob_name or generate_image_blob_name()
    expires_at = datetime.now(timezone.utc) + timedelta(
        hours=AZURE_SAS_TOKEN_EXPIRY_HOURS
    )

    try:
        token = generate_blob_sas(
            account_name=AZURE_STORAGE_ACCOUNT_NAME,
            container_name=AZURE_STORAGE_CONTAINER_NAME,
            blob_name=blob_name,
            account_key=AZURE_STORAGE_ACCOUNT_KEY,
            permission=BlobSasPermissions(create=True, write=True),
            expiry=expires_at,
        )
    except Exception as e:
        raise StorageError(f"Could not sign upload location for '{blob_name}': {e}") from e

    image_url = f"{_account_url()}/{AZURE_STORAGE_CONTAINER_NAME}/{blob_name}"
    logger.info(
        f"Issued upload location for blob '{blob_name}' in container "
        f"'{AZURE_STORAGE_CONTAINER_NAME}' (expires {expires_at.isoformat()})."
    )
    return {
        "signed_url": f"{image_url}?{token}",
        "path": blob_name,
        "token": token,
        "image_url": image_url,
        "expires_at": expires_at,
    }

from typing import NoReturn

from fastapi import HTTPException

from carecrew.services.errors import (
    StoreAuthenticationError,
    StoreConflictError,
    StoreError,
    StoreNotFoundError,
)


def raise_store_http_error(exc: StoreError) -> NoReturn:
    if isinstance(exc, StoreNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, StoreAuthenticationError):
        raise HTTPException(status_code=401, detail=str(exc))
    if isinstance(exc, StoreConflictError):
        raise HTTPException(status_code=409, detail=str(exc))
    raise HTTPException(status_code=400, detail=str(exc))

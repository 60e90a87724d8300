from fastapi import HTTPException, status

from core.errors import Conflict, InsufficientStock, InvalidRequest, LedgerError, NotFound


def to_http_exception(exc: LedgerError) -> HTTPException:
    """Each ledger error kind gets its own status; storage failures stay opaque."""
    if isinstance(exc, InvalidRequest):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, InsufficientStock):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Insufficient stock. Available={exc.available} requested={exc.requested}",
        )
    if isinstance(exc, Conflict):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

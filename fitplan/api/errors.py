"""Map domain errors to HTTP responses."""

from fastapi import HTTPException, status

from fitplan.plans.errors import EntityNotFoundError, FitplanError, InvariantViolationError, LedgerConflictError


def to_http_exception(error: FitplanError) -> HTTPException:
    """Translate an expected business error into an HTTPException.

    Args:
        error: Domain error raised by an authoring, ledger or workout operation

    Returns:
        HTTPException with 404 for missing entities and 400 for rejected writes
    """
    if isinstance(error, EntityNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, InvariantViolationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": error.code, "details": error.details},
        )
    if isinstance(error, LedgerConflictError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))

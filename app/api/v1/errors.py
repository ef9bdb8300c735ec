"""
Conversion des erreurs du moteur de facturation en réponses HTTP.

Chaque réponse porte un code stable (detail.code) en plus du message :
les clients distinguent ainsi un refus métier (INVALID_STATE, 409)
d'un conflit transitoire à rejouer (RETRYABLE_CONFLICT, 503).
"""
import logging

from fastapi import HTTPException, status

from app.core.exceptions import (
    BillingCoreError,
    ConcurrencyConflictError,
    ConsistencyViolationError,
    CycleDetectedError,
    ExternalCollaboratorError,
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = "1"


def http_error(error: BillingCoreError) -> HTTPException:
    """
    Construit l'HTTPException correspondant à une erreur métier.

    L'ordre des tests compte : InvalidStateError et QuotaExceededError
    héritent de ValidationError.

    Usage:
        try:
            change = service.apply_change(change_id, actor)
        except BillingCoreError as e:
            raise http_error(e)
    """
    detail = {"code": error.code, "message": error.message}
    headers = None

    if isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (InvalidStateError, QuotaExceededError)):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, (ValidationError, CycleDetectedError)):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, ConcurrencyConflictError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        headers = {"Retry-After": RETRY_AFTER_SECONDS}
    elif isinstance(error, ExternalCollaboratorError):
        status_code = status.HTTP_502_BAD_GATEWAY
    else:
        if isinstance(error, ConsistencyViolationError):
            logger.error(f"🚨 Incohérence de données remontée à l'API : {error.message}")
        else:
            logger.error(f"❌ Erreur métier non classée : {error!r}")
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return HTTPException(status_code=status_code, detail=detail, headers=headers)

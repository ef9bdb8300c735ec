# app/api/v1/billing/routes.py
"""
Routes des changements de facturation planifiés et du grand livre.

Planifier enregistre un changement PENDING et son prorata ; appliquer
(à échéance) met à jour la formule ou les options et écrit le grand livre.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.dependencies import CurrentActor, Pagination
from app.api.v1.errors import http_error
from app.core.exceptions import BillingCoreError
from app.database.session import get_db
from app.models.enums import BillingChangeStatus
from app.services.billing import BillingChangeService, ChangeRequest
from .schemas import (
    BillingChangeCreate,
    BillingChangeResponse,
    LedgerApplyRequest,
    LedgerEntryResponse,
    LedgerResponse,
    PaginatedBillingChanges,
)

router = APIRouter(tags=["Billing"])


# =============================================================================
# CHANGEMENTS PLANIFIÉS
# =============================================================================

@router.post(
    "/tenants/{tenant_id}/billing-changes",
    response_model=BillingChangeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Planifier un changement de facturation",
    description=(
        "Enregistre un changement PENDING (formule ou quantité d'option) "
        "avec son prorata. Un seul changement en attente par cible."
    ),
)
def schedule_billing_change(
    tenant_id: int,
    data: BillingChangeCreate,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    request = ChangeRequest(**data.model_dump())
    try:
        change = BillingChangeService(db).schedule_change(tenant_id, request, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return BillingChangeResponse.model_validate(change)


@router.get(
    "/tenants/{tenant_id}/billing-changes",
    response_model=PaginatedBillingChanges,
    summary="Lister les changements d'un tenant",
)
def list_billing_changes(
    tenant_id: int,
    actor: CurrentActor,
    pagination: Pagination,
    status_filter: Optional[BillingChangeStatus] = Query(None, alias="status", description="Filtrer par statut"),
    db: Session = Depends(get_db),
):
    try:
        changes = BillingChangeService(db).list_changes(tenant_id, status=status_filter)
    except BillingCoreError as e:
        raise http_error(e)

    return PaginatedBillingChanges(
        items=[BillingChangeResponse.model_validate(c) for c in pagination.slice(changes)],
        total=len(changes),
        page=pagination.page,
        size=pagination.size,
    )


@router.post(
    "/billing-changes/{change_id}/apply",
    response_model=BillingChangeResponse,
    summary="Appliquer un changement arrivé à échéance",
)
def apply_billing_change(
    change_id: int,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        change = BillingChangeService(db).apply_change(change_id, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return BillingChangeResponse.model_validate(change)


@router.post(
    "/billing-changes/{change_id}/cancel",
    response_model=BillingChangeResponse,
    summary="Annuler un changement en attente",
)
def cancel_billing_change(
    change_id: int,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        change = BillingChangeService(db).cancel_change(change_id, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return BillingChangeResponse.model_validate(change)


# =============================================================================
# GRAND LIVRE
# =============================================================================

@router.get(
    "/tenants/{tenant_id}/ledger",
    response_model=LedgerResponse,
    summary="Grand livre d'un tenant",
    description="Écritures de crédit/débit et solde des écritures non imputées.",
)
def get_ledger(
    tenant_id: int,
    actor: CurrentActor,
    only_unapplied: bool = Query(False, description="Uniquement les écritures non imputées"),
    db: Session = Depends(get_db),
):
    service = BillingChangeService(db)
    try:
        entries = service.list_ledger_entries(tenant_id, only_unapplied=only_unapplied)
    except BillingCoreError as e:
        raise http_error(e)

    return LedgerResponse(
        tenant_id=tenant_id,
        balance_cents=service.ledger_balance(tenant_id),
        entries=[LedgerEntryResponse.model_validate(e) for e in entries],
    )


@router.post(
    "/tenants/{tenant_id}/ledger/apply",
    response_model=LedgerResponse,
    summary="Imputer des écritures sur une facture",
)
def apply_ledger_entries(
    tenant_id: int,
    data: LedgerApplyRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    service = BillingChangeService(db)
    try:
        entries = service.mark_entries_applied(
            tenant_id,
            entry_ids=data.entry_ids,
            invoice_reference=data.invoice_reference,
            actor=actor,
        )
    except BillingCoreError as e:
        raise http_error(e)

    return LedgerResponse(
        tenant_id=tenant_id,
        balance_cents=service.ledger_balance(tenant_id),
        entries=[LedgerEntryResponse.model_validate(e) for e in entries],
    )

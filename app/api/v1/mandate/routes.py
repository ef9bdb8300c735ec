# app/api/v1/mandate/routes.py
"""
Routes du parcours de commande sur mandat administratif.

DRAFT → SENT → (PENDING_BC) → ACCEPTED → factures FA, suppression logique
des commandes et des factures.
Toute transition refusée par l'état courant répond 409 INVALID_STATE.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.dependencies import CurrentActor
from app.api.v1.errors import http_error
from app.core.exceptions import BillingCoreError
from app.database.session import get_db
from app.services.mandate.state_machine import (
    AddonLine,
    MandateInvoiceNotFoundError,
    MandateOrderService,
)
from .schemas import (
    CancelRequest,
    InvoiceRequest,
    MandateActivityResponse,
    MandateInvoiceResponse,
    MandateOrderCreate,
    MandateOrderResponse,
    PurchaseOrderRequest,
    RejectRequest,
)

router = APIRouter(prefix="/mandate-orders", tags=["Mandate Orders"])


# =============================================================================
# CRÉATION / LECTURE
# =============================================================================

@router.post(
    "",
    response_model=MandateOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Créer une commande",
    description="Crée une commande DRAFT numérotée dans la famille DV.",
)
def create_mandate_order(
    data: MandateOrderCreate,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    addons = [
        AddonLine(code=line.code, quantity=line.quantity, unit_price_cents=line.unit_price_cents)
        for line in data.addons
    ]
    try:
        order = MandateOrderService(db).create_order(
            plan_id=data.plan_id,
            tenant_id=data.tenant_id,
            billing_cycle=data.billing_cycle,
            addons=addons,
            discount_amount_cents=data.discount_amount_cents,
            client_name=data.client_name,
            client_siret=data.client_siret,
            quote_id=data.quote_id,
            actor=actor,
        )
    except BillingCoreError as e:
        raise http_error(e)
    return MandateOrderResponse.model_validate(order)


@router.get(
    "/{order_id}",
    response_model=MandateOrderResponse,
    summary="Détails d'une commande",
)
def get_mandate_order(
    order_id: int,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        order = MandateOrderService(db).get_order(order_id)
    except BillingCoreError as e:
        raise http_error(e)
    return MandateOrderResponse.model_validate(order)


@router.get(
    "/{order_id}/activities",
    response_model=List[MandateActivityResponse],
    summary="Journal d'une commande",
)
def list_mandate_activities(
    order_id: int,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    service = MandateOrderService(db)
    try:
        service.get_order(order_id)
    except BillingCoreError as e:
        raise http_error(e)
    return [MandateActivityResponse.model_validate(a) for a in service.list_activities(order_id)]


# =============================================================================
# TRANSITIONS
# =============================================================================

@router.post("/{order_id}/send", response_model=MandateOrderResponse, summary="Envoyer au client")
def send_mandate_order(
    order_id: int,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        order = MandateOrderService(db).send(order_id, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return MandateOrderResponse.model_validate(order)


@router.post(
    "/{order_id}/await-purchase-order",
    response_model=MandateOrderResponse,
    summary="Accord client, bon de commande attendu",
)
def await_purchase_order(
    order_id: int,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        order = MandateOrderService(db).await_purchase_order(order_id, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return MandateOrderResponse.model_validate(order)


@router.post(
    "/{order_id}/purchase-order",
    response_model=MandateOrderResponse,
    summary="Enregistrer le bon de commande client",
)
def record_purchase_order(
    order_id: int,
    data: PurchaseOrderRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        order = MandateOrderService(db).record_purchase_order(
            order_id,
            purchase_order_number=data.purchase_order_number,
            engagement_number=data.engagement_number,
            signed_document_path=data.signed_document_path,
            actor=actor,
        )
    except BillingCoreError as e:
        raise http_error(e)
    return MandateOrderResponse.model_validate(order)


@router.post(
    "/{order_id}/accept",
    response_model=MandateOrderResponse,
    summary="Valider la commande",
    description="Attribue le numéro BC s'il n'existe pas encore.",
)
def accept_mandate_order(
    order_id: int,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        order = MandateOrderService(db).accept(order_id, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return MandateOrderResponse.model_validate(order)


@router.post("/{order_id}/reject", response_model=MandateOrderResponse, summary="Refuser la commande")
def reject_mandate_order(
    order_id: int,
    data: RejectRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        order = MandateOrderService(db).reject(order_id, data.reason, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return MandateOrderResponse.model_validate(order)


@router.post("/{order_id}/cancel", response_model=MandateOrderResponse, summary="Annuler la commande")
def cancel_mandate_order(
    order_id: int,
    actor: CurrentActor,
    data: Optional[CancelRequest] = None,
    db: Session = Depends(get_db),
):
    reason = data.reason if data else None
    try:
        order = MandateOrderService(db).cancel(order_id, reason=reason, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return MandateOrderResponse.model_validate(order)


@router.post(
    "/{order_id}/invoice",
    response_model=MandateInvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Émettre une facture",
    description="Facture FA sur une commande ACCEPTED ; la commande reste ACCEPTED.",
)
def invoice_mandate_order(
    order_id: int,
    data: InvoiceRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        invoice = MandateOrderService(db).invoice(
            order_id,
            amount_cents=data.amount_cents,
            period_start=data.period_start,
            actor=actor,
        )
    except BillingCoreError as e:
        raise http_error(e)
    return MandateInvoiceResponse.model_validate(invoice)


# =============================================================================
# SUPPRESSION LOGIQUE
# =============================================================================

@router.delete(
    "/{order_id}",
    response_model=MandateOrderResponse,
    summary="Supprimer une commande",
    description="Suppression logique ; refusée tant que des factures actives y sont rattachées.",
)
def delete_mandate_order(
    order_id: int,
    actor: CurrentActor,
    reason: Optional[str] = Query(None, max_length=1000),
    db: Session = Depends(get_db),
):
    try:
        order = MandateOrderService(db).soft_delete_order(order_id, reason=reason, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return MandateOrderResponse.model_validate(order)


@router.delete(
    "/{order_id}/invoices/{invoice_id}",
    response_model=MandateInvoiceResponse,
    summary="Supprimer une facture",
    description="Suppression logique d'une facture non payée ; son montant redevient facturable.",
)
def delete_mandate_invoice(
    order_id: int,
    invoice_id: int,
    actor: CurrentActor,
    reason: Optional[str] = Query(None, max_length=1000),
    db: Session = Depends(get_db),
):
    service = MandateOrderService(db)
    try:
        if service.get_invoice(invoice_id).order_id != order_id:
            raise MandateInvoiceNotFoundError(f"Facture {invoice_id} non trouvée sur la commande {order_id}")
        invoice = service.soft_delete_invoice(invoice_id, reason=reason, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return MandateInvoiceResponse.model_validate(invoice)

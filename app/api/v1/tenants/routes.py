# app/api/v1/tenants/routes.py
"""
Routes de cycle de vie, quotas et sous-organisations des Tenants.

Réservées aux opérateurs de la plateforme ; l'acteur est fourni par la
passerelle d'authentification (en-têtes X-Actor-*).
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from app.api.v1.dependencies import CurrentActor
from app.api.v1.errors import http_error
from app.core.exceptions import BillingCoreError
from app.database.session import get_db
from app.models.enums import ResourceKind
from app.services.features import effective_features
from app.services.lifecycle import TenantLifecycleService
from app.services.organization import OrganizationService
from app.services.quota import QuotaResolver
from .schemas import (
    AdminCreate,
    AdminResponse,
    AssociationCreate,
    AssociationResponse,
    FeaturesResponse,
    LifecycleReasonRequest,
    ParentEpciUpdate,
    QuotaResponse,
    TenantDeletionResponse,
    TenantResponse,
)

router = APIRouter(prefix="/tenants", tags=["Tenants"])


# =============================================================================
# READ
# =============================================================================

@router.get(
    "/{tenant_id}",
    response_model=TenantResponse,
    summary="Détails d'un tenant",
)
def get_tenant(
    tenant_id: int,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        tenant = TenantLifecycleService(db).get_tenant(tenant_id)
    except BillingCoreError as e:
        raise http_error(e)
    return TenantResponse.model_validate(tenant)


# =============================================================================
# CYCLE DE VIE
# =============================================================================

@router.post(
    "/{tenant_id}/suspend",
    response_model=TenantResponse,
    summary="Suspendre un tenant",
    description="ACTIVE → SUSPENDED. Le motif est obligatoire.",
)
def suspend_tenant(
    tenant_id: int,
    data: LifecycleReasonRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        tenant = TenantLifecycleService(db).suspend(tenant_id, data.reason, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return TenantResponse.model_validate(tenant)


@router.post(
    "/{tenant_id}/unsuspend",
    response_model=TenantResponse,
    summary="Réactiver un tenant suspendu",
)
def unsuspend_tenant(
    tenant_id: int,
    data: LifecycleReasonRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        tenant = TenantLifecycleService(db).unsuspend(tenant_id, data.reason, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return TenantResponse.model_validate(tenant)


@router.post(
    "/{tenant_id}/archive",
    response_model=TenantResponse,
    summary="Archiver un tenant",
    description="Seul un tenant archivé peut ensuite être supprimé.",
)
def archive_tenant(
    tenant_id: int,
    data: LifecycleReasonRequest,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        tenant = TenantLifecycleService(db).archive(tenant_id, data.reason, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return TenantResponse.model_validate(tenant)


@router.delete(
    "/{tenant_id}",
    response_model=TenantDeletionResponse,
    summary="Supprimer un tenant archivé",
    description=(
        "Suppression récursive (descendants inclus). Les documents financiers "
        "sont archivés et conservés. Nécessite confirm=true."
    ),
)
def delete_tenant(
    tenant_id: int,
    actor: CurrentActor,
    confirm: bool = Query(False, description="Confirmation explicite de la suppression"),
    db: Session = Depends(get_db),
):
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "CONFIRMATION_REQUIRED", "message": "Ajoutez confirm=true pour supprimer"},
        )

    try:
        result = TenantLifecycleService(db).delete_archived_tenant(tenant_id, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)

    return TenantDeletionResponse(
        tenant_id=result.tenant_id,
        deleted_ids=result.deleted_ids,
        cycle_ids=result.cycle_ids,
        success=result.success,
    )


@router.put(
    "/{tenant_id}/parent-epci",
    response_model=TenantResponse,
    summary="Rattacher une commune à un EPCI",
    description="Refuse tout rattachement qui créerait un cycle.",
)
def set_parent_epci(
    tenant_id: int,
    data: ParentEpciUpdate,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        tenant = TenantLifecycleService(db).set_parent_epci(tenant_id, data.epci_id, actor=actor)
    except BillingCoreError as e:
        raise http_error(e)
    return TenantResponse.model_validate(tenant)


# =============================================================================
# QUOTAS & FEATURES
# =============================================================================

@router.get(
    "/{tenant_id}/quotas/{kind}",
    response_model=QuotaResponse,
    summary="Consulter un quota",
    description="Consommé / autorisé / restant. Une commune rattachée voit le pool de son EPCI.",
)
def get_quota(
    tenant_id: int,
    kind: ResourceKind,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        quota = QuotaResolver(db).resolve_for_display(tenant_id, kind)
    except BillingCoreError as e:
        raise http_error(e)

    return QuotaResponse(
        tenant_id=tenant_id,
        kind=kind,
        used=quota.used,
        allowed=quota.allowed,
        remaining=quota.remaining,
    )


@router.get(
    "/{tenant_id}/features",
    response_model=FeaturesResponse,
    summary="Fonctionnalités effectives",
)
def get_features(
    tenant_id: int,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        TenantLifecycleService(db).get_tenant(tenant_id)
    except BillingCoreError as e:
        raise http_error(e)

    features = effective_features(db, tenant_id)
    return FeaturesResponse(tenant_id=tenant_id, features=sorted(features))


# =============================================================================
# SOUS-ORGANISATIONS (contrôle de quota)
# =============================================================================

@router.post(
    "/{tenant_id}/associations",
    response_model=AssociationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Créer une association",
    description="Refusée (409 QUOTA_EXCEEDED) si le quota ASSOCIATIONS est atteint.",
)
def create_association(
    tenant_id: int,
    data: AssociationCreate,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        association = OrganizationService(db).create_association(
            tenant_id,
            name=data.name,
            contact_email=data.contact_email,
            actor=actor,
        )
    except BillingCoreError as e:
        raise http_error(e)
    return AssociationResponse.model_validate(association)


@router.post(
    "/{tenant_id}/admins",
    response_model=AdminResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Créer un administrateur",
    description="Refusée (409 QUOTA_EXCEEDED) si le quota ADMINS est atteint.",
)
def create_admin(
    tenant_id: int,
    data: AdminCreate,
    actor: CurrentActor,
    db: Session = Depends(get_db),
):
    try:
        user = OrganizationService(db).create_admin(
            tenant_id,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            actor=actor,
        )
    except BillingCoreError as e:
        raise http_error(e)
    return AdminResponse.model_validate(user)

"""
Machine à états des commandes sur mandat administratif.

    DRAFT ──send──> SENT ──accept──> ACCEPTED ──invoice──> (factures FA)
                     │ └──await_purchase_order──> PENDING_BC ──accept──┘
                     └──reject──> REJECTED
    DRAFT | SENT | PENDING_BC ──cancel──> CANCELLED

- PENDING_BC : acceptée par le client, bon de commande attendu. Équivalent
  à ACCEPTED pour les quotas et fonctionnalités, mais sans numéro BC.
- invoice() laisse la commande en ACCEPTED : la facturation se lit dans les
  MandateInvoice rattachées (plusieurs factures par commande possibles).

Chaque transition ajoute une ligne MandateActivity, y compris un rejet.

Suppression logique : soft_delete_order et soft_delete_invoice marquent la
pièce (is_deleted, deleted_at, deleted_by) et la journalisent. Une commande
supprimée n'accepte plus de transition ; une facture supprimée sort du
montant facturé.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.actor import SYSTEM_ACTOR, Actor
from app.core.config import settings
from app.core.exceptions import (
    ConsistencyViolationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.models.catalog.subscription_plan import SubscriptionPlan
from app.models.enums import (
    BillingInterval,
    DocumentFamily,
    InvoiceStatus,
    MandateActivityType,
    MandateOrderStatus,
)
from app.models.mandate.mandate_activity import MandateActivity
from app.models.mandate.mandate_invoice import MandateInvoice
from app.models.mandate.mandate_order import NUMBERED_STATUSES, MandateOrder
from app.models.mixins import utc_now
from app.models.tenants.tenant import Tenant
from app.services.billing.proration import shift_months
from app.services.catalog import addon_unit_price, get_addon_by_code, is_addon_available
from app.services.mandate.snapshot import validate_addons_snapshot
from app.services.notifications.outbox import enqueue_notification
from app.services.numbering.allocator import SequenceAllocator
from app.services.transactions import retry_on_conflict

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class MandateOrderNotFoundError(NotFoundError):
    """Commande sur mandat non trouvée."""
    pass


class MandateInvoiceNotFoundError(NotFoundError):
    """Facture sur mandat non trouvée."""
    pass


class MandateTransitionError(InvalidStateError):
    """Transition interdite depuis le statut courant."""
    pass


class InvalidMandateOrderError(ValidationError):
    """Données de commande invalides."""
    pass


# =============================================================================
# TRANSITIONS
# =============================================================================

@dataclass(frozen=True)
class Transition:
    sources: Sequence[MandateOrderStatus]
    target: Optional[MandateOrderStatus]
    activity: MandateActivityType
    title: str


TRANSITIONS: Dict[str, Transition] = {
    "send": Transition(
        sources=(MandateOrderStatus.DRAFT,),
        target=MandateOrderStatus.SENT,
        activity=MandateActivityType.ORDER_SENT,
        title="Devis envoyé au client",
    ),
    "await_purchase_order": Transition(
        sources=(MandateOrderStatus.SENT,),
        target=MandateOrderStatus.PENDING_BC,
        activity=MandateActivityType.PURCHASE_ORDER_PENDING,
        title="Accord client, bon de commande attendu",
    ),
    "record_purchase_order": Transition(
        sources=(MandateOrderStatus.SENT, MandateOrderStatus.PENDING_BC),
        target=None,
        activity=MandateActivityType.PURCHASE_ORDER_RECEIVED,
        title="Bon de commande client reçu",
    ),
    "accept": Transition(
        sources=(MandateOrderStatus.SENT, MandateOrderStatus.PENDING_BC),
        target=MandateOrderStatus.ACCEPTED,
        activity=MandateActivityType.ORDER_VALIDATED,
        title="Commande validée",
    ),
    "reject": Transition(
        sources=(MandateOrderStatus.SENT,),
        target=MandateOrderStatus.REJECTED,
        activity=MandateActivityType.ORDER_REJECTED,
        title="Commande refusée",
    ),
    "invoice": Transition(
        sources=(MandateOrderStatus.ACCEPTED,),
        target=None,
        activity=MandateActivityType.INVOICE_GENERATED,
        title="Facture émise",
    ),
    "cancel": Transition(
        sources=(MandateOrderStatus.DRAFT, MandateOrderStatus.SENT, MandateOrderStatus.PENDING_BC),
        target=MandateOrderStatus.CANCELLED,
        activity=MandateActivityType.ORDER_CANCELLED,
        title="Commande annulée",
    ),
}


@dataclass
class AddonLine:
    """Option demandée sur une commande (prix négocié facultatif)."""
    code: str
    quantity: int
    unit_price_cents: Optional[int] = None


# =============================================================================
# SERVICE
# =============================================================================

class MandateOrderService:
    """Parcours de commande sur mandat administratif."""

    def __init__(self, db: Session, allocator: Optional[SequenceAllocator] = None):
        self.db = db
        self.allocator = allocator or SequenceAllocator(db)

    # =========================================================================
    # LECTURE
    # =========================================================================

    def get_order(self, order_id: int, lock: bool = False) -> MandateOrder:
        query = select(MandateOrder).where(MandateOrder.id == order_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        order = self.db.execute(query).scalar_one_or_none()
        if not order:
            raise MandateOrderNotFoundError(f"Commande {order_id} non trouvée")
        return order

    def get_invoice(self, invoice_id: int, lock: bool = False) -> MandateInvoice:
        query = select(MandateInvoice).where(MandateInvoice.id == invoice_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        invoice = self.db.execute(query).scalar_one_or_none()
        if not invoice:
            raise MandateInvoiceNotFoundError(f"Facture {invoice_id} non trouvée")
        return invoice

    def list_activities(self, order_id: int) -> List[MandateActivity]:
        self.get_order(order_id)
        return list(self.db.execute(
            select(MandateActivity)
            .where(MandateActivity.order_id == order_id)
            .order_by(MandateActivity.id)
        ).scalars().all())

    def invoiced_amount(self, order_id: int) -> int:
        return self.db.execute(
            select(func.coalesce(func.sum(MandateInvoice.amount_cents), 0)).where(
                MandateInvoice.order_id == order_id,
                MandateInvoice.is_deleted.is_(False),
            )
        ).scalar() or 0

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _assert_consistent(self, order: MandateOrder) -> None:
        """commande_number existe si et seulement si le statut est ACCEPTED ou INVOICED."""
        has_number = order.commande_number is not None
        should_have_number = order.status in NUMBERED_STATUSES
        if has_number != should_have_number:
            logger.error(
                f"❌ Incohérence commande {order.id} : statut {order.status.value}, "
                f"numéro BC {order.commande_number!r}"
            )
            raise ConsistencyViolationError(
                f"Commande {order.id} incohérente : statut {order.status.value} "
                f"{'avec' if has_number else 'sans'} numéro de commande"
            )

    def _check_transition(self, order: MandateOrder, action: str) -> Transition:
        transition = TRANSITIONS[action]
        if order.is_deleted:
            raise MandateTransitionError(
                f"Action '{action}' impossible : la commande {order.order_number} est supprimée"
            )
        self._assert_consistent(order)
        if order.status not in transition.sources:
            allowed = ", ".join(s.value for s in transition.sources)
            raise MandateTransitionError(
                f"Action '{action}' impossible sur la commande {order.order_number} "
                f"en statut {order.status.value} (attendu : {allowed})"
            )
        return transition

    def _log_activity(
            self,
            order: MandateOrder,
            activity_type: MandateActivityType,
            title: str,
            actor: Actor,
            old_status: Optional[MandateOrderStatus] = None,
            description: Optional[str] = None,
            invoice: Optional[MandateInvoice] = None,
            details: Optional[Dict[str, Any]] = None,
    ) -> MandateActivity:
        activity = MandateActivity(
            tenant_id=order.tenant_id,
            order_id=order.id,
            invoice_id=invoice.id if invoice is not None else None,
            activity_type=activity_type,
            title=title,
            description=description,
            old_value=old_status.value if old_status else None,
            new_value=order.status.value,
            details=details,
            performed_by=actor.id,
            performed_by_type=actor.actor_type,
        )
        self.db.add(activity)
        return activity

    def _transition(
            self,
            order_id: int,
            action: str,
            actor: Actor,
            description: Optional[str] = None,
            details: Optional[Dict[str, Any]] = None,
            before_commit=None,
    ) -> MandateOrder:
        order = self.get_order(order_id, lock=True)
        transition = self._check_transition(order, action)

        old_status = order.status
        if transition.target is not None:
            order.status = transition.target
        if before_commit is not None:
            before_commit(order)

        self._assert_consistent(order)
        self._log_activity(
            order,
            transition.activity,
            transition.title,
            actor,
            old_status=old_status,
            description=description,
            details=details,
        )
        self.db.commit()
        self.db.refresh(order)

        logger.info(f"📄 Commande {order.order_number} : {old_status.value} → {order.status.value} ({action})")
        return order

    def _notification_payload(self, order: MandateOrder) -> Dict[str, Any]:
        return {
            "order_id": order.id,
            "order_number": order.order_number,
            "commande_number": order.commande_number,
            "client_name": order.client_name,
            "status": order.status.value,
        }

    # =========================================================================
    # CRÉATION
    # =========================================================================

    def _build_snapshot(
            self,
            plan: SubscriptionPlan,
            cycle: BillingInterval,
            addons: Sequence[AddonLine],
    ) -> List[Dict[str, Any]]:
        snapshot = []
        for line in addons:
            addon = get_addon_by_code(self.db, line.code.upper())
            if addon is None:
                raise InvalidMandateOrderError(f"Option inconnue : {line.code}")
            if not is_addon_available(self.db, plan, addon):
                raise InvalidMandateOrderError(f"L'option {addon.code} n'est pas disponible pour {plan.code}")
            unit_price = line.unit_price_cents
            if unit_price is None:
                unit_price = addon_unit_price(self.db, plan, addon, cycle)
            snapshot.append({
                "addon_id": addon.id,
                "code": addon.code,
                "name": addon.name,
                "quantity": line.quantity,
                "unit_price_cents": unit_price,
                "total_cents": unit_price * line.quantity,
            })
        return validate_addons_snapshot(snapshot)

    @retry_on_conflict
    def create_order(
            self,
            plan_id: int,
            tenant_id: Optional[int] = None,
            billing_cycle: BillingInterval = BillingInterval.YEARLY,
            addons: Sequence[AddonLine] = (),
            discount_amount_cents: int = 0,
            client_name: Optional[str] = None,
            client_siret: Optional[str] = None,
            quote_id: Optional[int] = None,
            actor: Actor = SYSTEM_ACTOR,
            today: Optional[date] = None,
    ) -> MandateOrder:
        """
        Crée une commande DRAFT numérotée dans la famille DV.

        Montant annuel = (formule + options) × 12 en mensuel, × 1 en annuel.
        """
        today = today or utc_now().date()

        if tenant_id is not None:
            tenant = self.db.get(Tenant, tenant_id)
            if tenant is None:
                raise NotFoundError(f"Tenant {tenant_id} non trouvé")
            if tenant.is_archived:
                raise InvalidStateError(f"Le tenant {tenant_id} est archivé")
            client_name = client_name or tenant.name
            client_siret = client_siret or tenant.siret

        plan = self.db.get(SubscriptionPlan, plan_id)
        if plan is None:
            raise NotFoundError(f"Formule {plan_id} non trouvée")
        if not plan.is_active:
            raise InvalidMandateOrderError(f"La formule {plan.code} n'est plus commercialisée")
        if discount_amount_cents < 0:
            raise InvalidMandateOrderError("La remise ne peut pas être négative")

        snapshot = self._build_snapshot(plan, billing_cycle, addons)
        plan_amount = plan.price_for(billing_cycle)
        addons_amount = sum(item["total_cents"] for item in snapshot)
        periods = 12 if billing_cycle == BillingInterval.MONTHLY else 1
        annual_amount = (plan_amount + addons_amount) * periods
        if discount_amount_cents > annual_amount:
            raise InvalidMandateOrderError("La remise dépasse le montant annuel")

        number = self.allocator.allocate(DocumentFamily.QUOTE, today)
        order = MandateOrder(
            order_number=number.formatted,
            order_sequence=number.sequence,
            tenant_id=tenant_id,
            quote_id=quote_id,
            plan_id=plan.id,
            billing_cycle=billing_cycle,
            status=MandateOrderStatus.DRAFT,
            plan_amount_cents=plan_amount,
            addons_amount_cents=addons_amount,
            annual_amount_cents=annual_amount,
            discount_amount_cents=discount_amount_cents,
            final_amount_cents=annual_amount - discount_amount_cents,
            addons_snapshot=snapshot,
            client_name=client_name,
            client_siret=client_siret,
        )
        self.db.add(order)
        self.db.flush()

        self._log_activity(
            order,
            MandateActivityType.ORDER_CREATED,
            "Commande créée",
            actor,
            details={"plan_code": plan.code, "final_amount_cents": order.final_amount_cents},
        )
        self.db.commit()
        self.db.refresh(order)

        logger.info(f"📝 Commande {order.order_number} créée ({order.final_amount_cents} cts)")
        return order

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    @retry_on_conflict
    def send(self, order_id: int, actor: Actor = SYSTEM_ACTOR) -> MandateOrder:
        def mark_sent(order: MandateOrder) -> None:
            order.sent_at = utc_now()

        return self._transition(order_id, "send", actor, before_commit=mark_sent)

    @retry_on_conflict
    def await_purchase_order(self, order_id: int, actor: Actor = SYSTEM_ACTOR) -> MandateOrder:
        return self._transition(order_id, "await_purchase_order", actor)

    @retry_on_conflict
    def record_purchase_order(
            self,
            order_id: int,
            purchase_order_number: str,
            engagement_number: Optional[str] = None,
            signed_document_path: Optional[str] = None,
            actor: Actor = SYSTEM_ACTOR,
    ) -> MandateOrder:
        """Enregistre les références du bon de commande client (chemin de stockage opaque)."""
        if not purchase_order_number or not purchase_order_number.strip():
            raise InvalidMandateOrderError("Le numéro de bon de commande est obligatoire")

        def store_references(order: MandateOrder) -> None:
            order.purchase_order_number = purchase_order_number.strip()
            if engagement_number:
                order.engagement_number = engagement_number
            if signed_document_path:
                order.signed_document_path = signed_document_path

        return self._transition(
            order_id,
            "record_purchase_order",
            actor,
            details={"purchase_order_number": purchase_order_number},
            before_commit=store_references,
        )

    @retry_on_conflict
    def accept(self, order_id: int, actor: Actor = SYSTEM_ACTOR, today: Optional[date] = None) -> MandateOrder:
        """
        SENT | PENDING_BC → ACCEPTED.

        Le numéro BC est attribué ici s'il n'existe pas encore, dans la même
        transaction que le changement de statut.
        """
        today = today or utc_now().date()

        def validate(order: MandateOrder) -> None:
            order.validated_at = utc_now()
            order.validated_by = actor.id
            if order.commande_number is None:
                number = self.allocator.allocate(DocumentFamily.ORDER, today)
                order.commande_number = number.formatted
                order.commande_sequence = number.sequence
            enqueue_notification(
                self.db, "mandate_order.accepted", order.tenant_id, self._notification_payload(order)
            )

        return self._transition(order_id, "accept", actor, before_commit=validate)

    @retry_on_conflict
    def reject(self, order_id: int, reason: str, actor: Actor = SYSTEM_ACTOR) -> MandateOrder:
        """SENT → REJECTED (terminal). Le motif est obligatoire."""
        if not reason or not reason.strip():
            raise InvalidMandateOrderError("Le motif de refus est obligatoire")

        def mark_rejected(order: MandateOrder) -> None:
            order.rejected_at = utc_now()
            order.rejection_reason = reason.strip()
            payload = self._notification_payload(order)
            payload["reason"] = order.rejection_reason
            enqueue_notification(self.db, "mandate_order.rejected", order.tenant_id, payload)

        return self._transition(order_id, "reject", actor, description=reason.strip(), before_commit=mark_rejected)

    @retry_on_conflict
    def cancel(self, order_id: int, reason: Optional[str] = None, actor: Actor = SYSTEM_ACTOR) -> MandateOrder:
        def mark_cancelled(order: MandateOrder) -> None:
            order.cancelled_at = utc_now()

        return self._transition(order_id, "cancel", actor, description=reason, before_commit=mark_cancelled)

    @retry_on_conflict
    def invoice(
            self,
            order_id: int,
            amount_cents: Optional[int] = None,
            period_start: Optional[date] = None,
            actor: Actor = SYSTEM_ACTOR,
            today: Optional[date] = None,
    ) -> MandateInvoice:
        """
        Émet une facture FA sur une commande ACCEPTED.

        Par défaut la facture couvre le reste à facturer de la commande,
        sur un cycle de facturation à partir de period_start.
        La commande reste ACCEPTED.
        """
        today = today or utc_now().date()
        order = self.get_order(order_id, lock=True)
        transition = self._check_transition(order, "invoice")

        remaining = order.final_amount_cents - self.invoiced_amount(order.id)
        if amount_cents is None:
            if remaining <= 0:
                raise MandateTransitionError(f"La commande {order.order_number} est entièrement facturée")
            amount_cents = remaining
        if amount_cents <= 0:
            raise InvalidMandateOrderError("Le montant facturé doit être positif")
        if amount_cents > remaining:
            raise InvalidMandateOrderError(
                f"Le montant {amount_cents} dépasse le reste à facturer ({remaining})"
            )

        period_start = period_start or today
        months = 12 if order.billing_cycle == BillingInterval.YEARLY else 1
        period_end = shift_months(period_start, months) - timedelta(days=1)

        number = self.allocator.allocate(DocumentFamily.INVOICE, today)
        invoice = MandateInvoice(
            invoice_number=number.formatted,
            invoice_sequence=number.sequence,
            order_id=order.id,
            tenant_id=order.tenant_id,
            status=InvoiceStatus.SENT,
            amount_cents=amount_cents,
            period_start=period_start,
            period_end=period_end,
            due_date=today + timedelta(days=settings.MANDATE_PAYMENT_TERMS_DAYS),
        )
        self.db.add(invoice)
        self.db.flush()

        self._log_activity(
            order,
            transition.activity,
            transition.title,
            actor,
            old_status=order.status,
            invoice=invoice,
            details={"invoice_number": invoice.invoice_number, "amount_cents": amount_cents},
        )
        payload = self._notification_payload(order)
        payload.update({
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "amount_cents": amount_cents,
            "due_date": invoice.due_date.isoformat(),
        })
        enqueue_notification(self.db, "mandate_invoice.created", order.tenant_id, payload)
        self.db.commit()
        self.db.refresh(invoice)

        logger.info(f"🧾 Facture {invoice.invoice_number} émise sur la commande {order.order_number}")
        return invoice

    # =========================================================================
    # SUPPRESSION LOGIQUE
    # =========================================================================

    @retry_on_conflict
    def soft_delete_order(
            self,
            order_id: int,
            reason: Optional[str] = None,
            actor: Actor = SYSTEM_ACTOR,
    ) -> MandateOrder:
        """
        Supprime logiquement une commande, quel que soit son statut.

        Refusée tant qu'une facture non supprimée y est rattachée : les
        factures se suppriment d'abord, une par une.
        """
        order = self.get_order(order_id, lock=True)
        if order.is_deleted:
            raise MandateTransitionError(f"La commande {order.order_number} est déjà supprimée")

        live_invoices = self.db.execute(
            select(MandateInvoice.invoice_number).where(
                MandateInvoice.order_id == order.id,
                MandateInvoice.is_deleted.is_(False),
            )
        ).scalars().all()
        if live_invoices:
            raise MandateTransitionError(
                f"La commande {order.order_number} porte des factures actives ({', '.join(live_invoices)})"
            )

        order.is_deleted = True
        order.deleted_at = utc_now()
        order.deleted_by = actor.id

        self._log_activity(
            order,
            MandateActivityType.ORDER_DELETED,
            "Commande supprimée",
            actor,
            old_status=order.status,
            description=reason,
        )
        self.db.commit()
        self.db.refresh(order)

        logger.info(f"🗑️ Commande {order.order_number} supprimée par {actor.id}")
        return order

    @retry_on_conflict
    def soft_delete_invoice(
            self,
            invoice_id: int,
            reason: Optional[str] = None,
            actor: Actor = SYSTEM_ACTOR,
    ) -> MandateInvoice:
        """Supprime logiquement une facture non payée ; son montant redevient facturable."""
        invoice = self.get_invoice(invoice_id)
        # Même ordre de verrouillage que invoice() : la commande d'abord
        order = self.get_order(invoice.order_id, lock=True)
        invoice = self.get_invoice(invoice_id, lock=True)

        if invoice.is_deleted:
            raise MandateTransitionError(f"La facture {invoice.invoice_number} est déjà supprimée")
        if invoice.status == InvoiceStatus.PAID:
            raise MandateTransitionError(f"La facture {invoice.invoice_number} est payée")

        invoice.is_deleted = True
        invoice.deleted_at = utc_now()
        invoice.deleted_by = actor.id

        self._log_activity(
            order,
            MandateActivityType.INVOICE_DELETED,
            "Facture supprimée",
            actor,
            old_status=order.status,
            description=reason,
            invoice=invoice,
            details={"invoice_number": invoice.invoice_number, "amount_cents": invoice.amount_cents},
        )
        self.db.commit()
        self.db.refresh(invoice)

        logger.info(f"🗑️ Facture {invoice.invoice_number} supprimée par {actor.id}")
        return invoice

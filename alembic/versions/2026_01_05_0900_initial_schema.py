"""initial_schema

Revision ID: 4c1e2a9b7d10
Revises:
Create Date: 2026-01-05 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4c1e2a9b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# =============================================================================
# TYPES ENUM
# =============================================================================
#
# Plusieurs tables partagent un même type (billing_interval_enum,
# invoice_status_enum...) : les types sont créés une seule fois en tête de
# migration, les colonnes les référencent avec create_type=False.

ENUMS = {
    'tenant_type_enum': ('MAIRIE', 'EPCI', 'ASSOCIATION'),
    'lifecycle_status_enum': ('ACTIVE', 'SUSPENDED', 'ARCHIVED'),
    'billing_interval_enum': ('MONTHLY', 'YEARLY'),
    'payment_method_enum': ('STRIPE', 'BANK_TRANSFER', 'CHECK', 'ADMINISTRATIVE_MANDATE'),
    'billing_change_type_enum': ('PLAN_CHANGE', 'ADDON_CHANGE'),
    'billing_change_status_enum': ('PENDING', 'APPLIED', 'CANCELLED'),
    'ledger_entry_type_enum': ('CREDIT', 'DEBIT'),
    'quote_status_enum': ('DRAFT', 'SENT', 'ACCEPTED', 'REJECTED', 'EXPIRED'),
    'invoice_status_enum': ('DRAFT', 'SENT', 'PAID', 'OVERDUE', 'CANCELLED'),
    'mandate_order_status_enum': (
        'DRAFT', 'SENT', 'PENDING_BC', 'ACCEPTED', 'REJECTED', 'INVOICED', 'CANCELLED',
    ),
    'mandate_activity_type_enum': (
        'ORDER_CREATED', 'ORDER_SENT', 'PURCHASE_ORDER_PENDING', 'PURCHASE_ORDER_RECEIVED',
        'ORDER_VALIDATED', 'ORDER_REJECTED', 'ORDER_CANCELLED', 'ORDER_DELETED',
        'INVOICE_GENERATED', 'INVOICE_DELETED',
    ),
    'actor_type_enum': ('SUPER_ADMIN', 'TENANT_ADMIN', 'SYSTEM'),
    'outbox_status_enum': ('PENDING', 'SENT', 'FAILED'),
    'feature_override_mode_enum': ('ENABLE', 'DISABLE'),
}


def enum(name: str) -> postgresql.ENUM:
    """Référence un type ENUM déjà créé."""
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def timestamps() -> list:
    """Colonnes du TimestampMixin."""
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def archivable() -> list:
    """Colonnes de l'ArchivableMixin (documents financiers)."""
    return [
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
    ]


def soft_delete() -> list:
    """Colonnes du SoftDeleteMixin (pièces sur mandat)."""
    return [
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_by', sa.String(100), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""

    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # ==========================================================================
    # 1. CATALOGUE
    # ==========================================================================

    op.create_table(
        'subscription_plans',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True, comment='Code unique de la formule'),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('monthly_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('yearly_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_admins', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('associations_included', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('communes_included', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('has_ideas', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_incidents', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_meetings', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_free', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *timestamps(),
    )

    op.create_table(
        'addons',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('default_monthly_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('default_yearly_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *timestamps(),
    )

    op.create_table(
        'plan_addon_access',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('subscription_plans.id', ondelete='CASCADE'), nullable=False),
        sa.Column('addon_id', sa.Integer(), sa.ForeignKey('addons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('monthly_price_cents', sa.Integer(), nullable=True),
        sa.Column('yearly_price_cents', sa.Integer(), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('plan_id', 'addon_id', name='uq_plan_addon_access'),
    )
    op.create_index('ix_plan_addon_access_plan_id', 'plan_addon_access', ['plan_id'])
    op.create_index('ix_plan_addon_access_addon_id', 'plan_addon_access', ['addon_id'])

    op.create_table(
        'features',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *timestamps(),
    )

    op.create_table(
        'plan_feature_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('subscription_plans.id', ondelete='CASCADE'), nullable=False),
        sa.Column('feature_id', sa.Integer(), sa.ForeignKey('features.id', ondelete='CASCADE'), nullable=False),
        *timestamps(),
        sa.UniqueConstraint('plan_id', 'feature_id', name='uq_plan_feature'),
    )
    op.create_index('ix_plan_feature_assignments_plan_id', 'plan_feature_assignments', ['plan_id'])

    # ==========================================================================
    # 2. TENANTS
    # ==========================================================================

    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('siret', sa.String(14), nullable=True),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('tenant_type', enum('tenant_type_enum'), nullable=False),
        sa.Column('parent_epci_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('parent_tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('subscription_plan_id', sa.Integer(), sa.ForeignKey('subscription_plans.id'), nullable=True),
        sa.Column('billing_interval', enum('billing_interval_enum'), nullable=False, server_default='MONTHLY'),
        sa.Column('payment_method', enum('payment_method_enum'), nullable=True),
        sa.Column('is_free', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('purchased_associations', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('purchased_admins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('purchased_communes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lifecycle_status', enum('lifecycle_status_enum'), nullable=False, server_default='ACTIVE'),
        sa.Column('suspended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('suspension_reason', sa.Text(), nullable=True),
        sa.Column('suspended_by', sa.String(100), nullable=True),
        sa.Column('reactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reactivation_reason', sa.Text(), nullable=True),
        sa.Column('reactivated_by', sa.String(100), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archive_reason', sa.Text(), nullable=True),
        sa.Column('archived_by', sa.String(100), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_tenants_parent_epci_id', 'tenants', ['parent_epci_id'])
    op.create_index('ix_tenants_parent_tenant_id', 'tenants', ['parent_tenant_id'])
    op.create_index('ix_tenants_lifecycle_status', 'tenants', ['lifecycle_status'])

    op.create_table(
        'tenant_addons',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('addon_id', sa.Integer(), sa.ForeignKey('addons.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pending_quantity', sa.Integer(), nullable=True),
        sa.Column('pending_effective_date', sa.Date(), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'addon_id', name='uq_tenant_addon'),
    )
    op.create_index('ix_tenant_addons_tenant_id', 'tenant_addons', ['tenant_id'])

    op.create_table(
        'tenant_feature_overrides',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('feature_code', sa.String(50), nullable=False),
        sa.Column('mode', enum('feature_override_mode_enum'), nullable=False),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'feature_code', name='uq_tenant_feature_override'),
    )
    op.create_index('ix_tenant_feature_overrides_tenant_id', 'tenant_feature_overrides', ['tenant_id'])

    # ==========================================================================
    # 3. DONNÉES OPÉRATIONNELLES
    # ==========================================================================

    op.create_table(
        'associations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *timestamps(),
    )
    op.create_index('ix_associations_tenant_id', 'associations', ['tenant_id'])

    op.create_table(
        'tenant_domains',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('label', sa.String(100), nullable=False),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_tenant_domain'),
    )
    op.create_index('ix_tenant_domains_tenant_id', 'tenant_domains', ['tenant_id'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('association_id', sa.Integer(), sa.ForeignKey('associations.id'), nullable=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *timestamps(),
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_index('ix_users_association_id', 'users', ['association_id'])

    op.create_table(
        'meetings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_meetings_tenant_id', 'meetings', ['tenant_id'])

    op.create_table(
        'meeting_registrations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('meeting_id', sa.Integer(), sa.ForeignKey('meetings.id'), nullable=False),
        sa.Column('attendee_name', sa.String(255), nullable=False),
        sa.Column('attendee_email', sa.String(255), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_meeting_registrations_meeting_id', 'meeting_registrations', ['meeting_id'])

    # ==========================================================================
    # 4. FACTURATION
    # ==========================================================================

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('prefix', sa.String(10), nullable=False, comment='Clé de famille (DV, BC, FA, AV)'),
        sa.Column('last_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('year', 'prefix', name='uq_document_sequence_year_prefix'),
    )

    op.create_table(
        'document_number_formats',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('family', sa.String(10), nullable=False),
        sa.Column('prefix', sa.String(20), nullable=False),
        sa.Column('separator', sa.String(5), nullable=False, server_default='-'),
        sa.Column('sequence_digits', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('include_month', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *timestamps(),
    )
    op.create_index('ix_document_number_formats_family', 'document_number_formats', ['family'])

    op.create_table(
        'quotes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quote_number', sa.String(50), nullable=False, unique=True),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('client_name', sa.String(255), nullable=True),
        sa.Column('status', enum('quote_status_enum'), nullable=False, server_default='DRAFT'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('valid_until', sa.Date(), nullable=True),
        *archivable(),
        *timestamps(),
    )
    op.create_index('ix_quotes_tenant_id', 'quotes', ['tenant_id'])

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('invoice_number', sa.String(50), nullable=False, unique=True),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('status', enum('invoice_status_enum'), nullable=False, server_default='DRAFT'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('due_date', sa.Date(), nullable=True),
        *archivable(),
        *timestamps(),
    )
    op.create_index('ix_invoices_tenant_id', 'invoices', ['tenant_id'])

    op.create_table(
        'tenant_billing_changes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('change_type', enum('billing_change_type_enum'), nullable=False),
        sa.Column('status', enum('billing_change_status_enum'), nullable=False, server_default='PENDING'),
        sa.Column('from_plan_id', sa.Integer(), sa.ForeignKey('subscription_plans.id'), nullable=True),
        sa.Column('to_plan_id', sa.Integer(), sa.ForeignKey('subscription_plans.id'), nullable=True),
        sa.Column('from_billing_interval', enum('billing_interval_enum'), nullable=True),
        sa.Column('to_billing_interval', enum('billing_interval_enum'), nullable=True),
        sa.Column('addon_id', sa.Integer(), sa.ForeignKey('addons.id'), nullable=True),
        sa.Column('from_quantity', sa.Integer(), nullable=True),
        sa.Column('to_quantity', sa.Integer(), nullable=True),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('prorata_credit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('prorata_debit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_method', enum('payment_method_enum'), nullable=True),
        sa.Column('requested_by', sa.String(100), nullable=True),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_tenant_billing_changes_tenant_id', 'tenant_billing_changes', ['tenant_id'])
    op.create_index('ix_tenant_billing_changes_status', 'tenant_billing_changes', ['status'])
    op.create_index('ix_tenant_billing_changes_effective_date', 'tenant_billing_changes', ['effective_date'])

    op.create_table(
        'billing_ledger_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('entry_type', enum('ledger_entry_type_enum'), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column(
            'billing_change_id', sa.Integer(),
            sa.ForeignKey('tenant_billing_changes.id'), nullable=True,
        ),
        sa.Column('applied_to_invoice', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('invoice_reference', sa.String(50), nullable=True),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('amount_cents > 0', name='ck_ledger_amount_positive'),
    )
    op.create_index('ix_billing_ledger_entries_tenant_id', 'billing_ledger_entries', ['tenant_id'])
    op.create_index('ix_billing_ledger_entries_billing_change_id', 'billing_ledger_entries', ['billing_change_id'])
    op.create_index('ix_billing_ledger_entries_applied_to_invoice', 'billing_ledger_entries', ['applied_to_invoice'])

    # ==========================================================================
    # 5. MANDATS ADMINISTRATIFS
    # ==========================================================================

    op.create_table(
        'mandate_orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_number', sa.String(50), nullable=False, unique=True),
        sa.Column('order_sequence', sa.Integer(), nullable=False),
        sa.Column('commande_number', sa.String(50), nullable=True, unique=True),
        sa.Column('commande_sequence', sa.Integer(), nullable=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('quote_id', sa.Integer(), sa.ForeignKey('quotes.id'), nullable=True),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('subscription_plans.id'), nullable=True),
        sa.Column('billing_cycle', enum('billing_interval_enum'), nullable=False, server_default='YEARLY'),
        sa.Column('status', enum('mandate_order_status_enum'), nullable=False, server_default='DRAFT'),
        sa.Column('plan_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('addons_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('annual_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('final_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('addons_snapshot', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('client_name', sa.String(255), nullable=True),
        sa.Column('client_siret', sa.String(14), nullable=True),
        sa.Column('purchase_order_number', sa.String(100), nullable=True),
        sa.Column('engagement_number', sa.String(100), nullable=True),
        sa.Column('signed_document_path', sa.String(500), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('validated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('validated_by', sa.String(100), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *soft_delete(),
        *archivable(),
        *timestamps(),
    )
    op.create_index('ix_mandate_orders_tenant_id', 'mandate_orders', ['tenant_id'])
    op.create_index('ix_mandate_orders_status', 'mandate_orders', ['status'])

    op.create_table(
        'mandate_invoices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('invoice_number', sa.String(50), nullable=False, unique=True),
        sa.Column('invoice_sequence', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('mandate_orders.id'), nullable=False),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('status', enum('invoice_status_enum'), nullable=False, server_default='DRAFT'),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        *soft_delete(),
        *archivable(),
        *timestamps(),
    )
    op.create_index('ix_mandate_invoices_order_id', 'mandate_invoices', ['order_id'])
    op.create_index('ix_mandate_invoices_tenant_id', 'mandate_invoices', ['tenant_id'])

    op.create_table(
        'mandate_activities',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id', ondelete='SET NULL'), nullable=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('mandate_orders.id'), nullable=True),
        sa.Column('invoice_id', sa.Integer(), sa.ForeignKey('mandate_invoices.id'), nullable=True),
        sa.Column('activity_type', enum('mandate_activity_type_enum'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('old_value', sa.String(50), nullable=True),
        sa.Column('new_value', sa.String(50), nullable=True),
        sa.Column('details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('performed_by', sa.String(100), nullable=True),
        sa.Column('performed_by_type', enum('actor_type_enum'), nullable=False, server_default='SYSTEM'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        comment="Journal des transitions de mandats (immuable)",
    )
    op.create_index('ix_mandate_activities_tenant_id', 'mandate_activities', ['tenant_id'])
    op.create_index('ix_mandate_activities_order_id', 'mandate_activities', ['order_id'])
    op.create_index('ix_mandate_activities_created_at', 'mandate_activities', ['created_at'])

    # ==========================================================================
    # 6. PLATEFORME (audit, outbox, webhooks)
    # ==========================================================================

    op.create_table(
        'platform_audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.String(100), nullable=True),
        sa.Column('actor_type', sa.String(20), nullable=False, server_default='SYSTEM'),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('target_tenant_id', sa.Integer(), sa.ForeignKey('tenants.id', ondelete='SET NULL'), nullable=True),
        sa.Column('target_table', sa.String(100), nullable=True),
        sa.Column('target_id', sa.Integer(), nullable=True),
        sa.Column('details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        comment="Logs d'audit des actions d'administration (immuables)",
    )
    op.create_index('ix_platform_audit_logs_actor_id', 'platform_audit_logs', ['actor_id'])
    op.create_index('ix_platform_audit_logs_action', 'platform_audit_logs', ['action'])
    op.create_index('ix_platform_audit_logs_target_tenant_id', 'platform_audit_logs', ['target_tenant_id'])
    op.create_index('ix_platform_audit_logs_created_at', 'platform_audit_logs', ['created_at'])

    op.create_table(
        'notification_outbox',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=True),
        sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('status', enum('outbox_status_enum'), nullable=False, server_default='PENDING'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_notification_outbox_tenant_id', 'notification_outbox', ['tenant_id'])
    op.create_index('ix_notification_outbox_status', 'notification_outbox', ['status'])

    op.create_table(
        'processed_webhook_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.String(255), nullable=False, unique=True),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('outcome', sa.String(50), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Downgrade schema."""

    for table in (
        'processed_webhook_events',
        'notification_outbox',
        'platform_audit_logs',
        'mandate_activities',
        'mandate_invoices',
        'mandate_orders',
        'billing_ledger_entries',
        'tenant_billing_changes',
        'invoices',
        'quotes',
        'document_number_formats',
        'document_sequences',
        'meeting_registrations',
        'meetings',
        'users',
        'tenant_domains',
        'associations',
        'tenant_feature_overrides',
        'tenant_addons',
        'tenants',
        'plan_feature_assignments',
        'features',
        'plan_addon_access',
        'addons',
        'subscription_plans',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)

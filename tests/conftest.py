"""
Fixtures pytest partagées pour les tests CivicLink Billing.

Ce module fournit :
- Une base de données SQLite en mémoire pour les tests (rapide, isolé)
- Le catalogue de base (formules, options, formats de numérotation)
- Des tenants de test (mairie autonome, EPCI, commune rattachée)
- Un client FastAPI branché sur la session de test

IMPORTANT - Transactions:
- Les services commitent eux-mêmes : la session de test travaille dans
  un SAVEPOINT, la transaction externe est annulée en fin de test
- Les fixtures commitent (et pas seulement flush) : un rollback de
  service ne doit pas effacer les données de départ
- SQLite ignore FOR UPDATE / SKIP LOCKED : les verrous ne sont pas
  testés ici, seulement la logique métier
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

# Import de la Base et des modèles
from app.models.base import Base
from app.main import app
from app.models import (
    Addon,
    DocumentNumberFormat,
    Feature,
    PlanFeatureAssignment,
    SubscriptionPlan,
    Tenant,
)
from app.models.enums import BillingInterval, PaymentMethod, TenantType
from tests.factories import persist


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """
    Crée un engine SQLite en mémoire pour les tests.

    Avantages :
    - Rapide (pas d'I/O disque)
    - Isolé (chaque test a sa propre base)
    - Pas besoin de PostgreSQL pour les tests unitaires
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,  # Mettre True pour debug SQL
    )

    # Créer toutes les tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Nettoyer
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """
    Fournit une session de base de données isolée pour chaque test.

    Chaque commit() du code testé libère un SAVEPOINT, chaque rollback()
    revient au dernier commit : la transaction externe n'est jamais validée.
    """
    connection = engine.connect()

    # Démarrer une transaction externe
    transaction = connection.begin()

    # Session liée à la connexion, un SAVEPOINT par transaction de session
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    try:
        yield session
    finally:
        session.close()
        # Rollback la transaction externe (annule tout)
        transaction.rollback()
        connection.close()


# =============================================================================
# MODEL FIXTURES - Catalogue
# =============================================================================

@pytest.fixture
def free_plan(db_session: Session) -> SubscriptionPlan:
    """Formule gratuite d'essai."""
    return persist(db_session, SubscriptionPlan(
        code="FREE_TRIAL",
        name="Essai gratuit",
        monthly_price_cents=0,
        yearly_price_cents=0,
        max_admins=1,
        associations_included=0,
        communes_included=0,
        is_free=True,
    ))


@pytest.fixture
def standard_plan(db_session: Session) -> SubscriptionPlan:
    """Formule Standard : 2 admins, 5 associations, idées + incidents."""
    return persist(db_session, SubscriptionPlan(
        code="STANDARD",
        name="Standard",
        monthly_price_cents=3100,
        yearly_price_cents=31000,
        max_admins=2,
        associations_included=5,
        communes_included=0,
        has_ideas=True,
        has_incidents=True,
    ))


@pytest.fixture
def premium_plan(db_session: Session) -> SubscriptionPlan:
    """Formule Premium : 5 admins, 20 associations, toutes fonctionnalités."""
    return persist(db_session, SubscriptionPlan(
        code="PREMIUM",
        name="Premium",
        monthly_price_cents=6200,
        yearly_price_cents=62000,
        max_admins=5,
        associations_included=20,
        communes_included=0,
        has_ideas=True,
        has_incidents=True,
        has_meetings=True,
    ))


@pytest.fixture
def epci_plan(db_session: Session) -> SubscriptionPlan:
    """Formule EPCI : 10 communes incluses."""
    return persist(db_session, SubscriptionPlan(
        code="EPCI",
        name="Intercommunalité",
        monthly_price_cents=29900,
        yearly_price_cents=299000,
        max_admins=10,
        associations_included=50,
        communes_included=10,
        has_ideas=True,
        has_incidents=True,
        has_meetings=True,
    ))


@pytest.fixture
def admin_addon(db_session: Session) -> Addon:
    return persist(db_session, Addon(
        code="ADMIN",
        name="Administrateur supplémentaire",
        default_monthly_price_cents=900,
        default_yearly_price_cents=9000,
    ))


@pytest.fixture
def associations_addon(db_session: Session) -> Addon:
    return persist(db_session, Addon(
        code="ASSOCIATIONS",
        name="Association supplémentaire",
        default_monthly_price_cents=500,
        default_yearly_price_cents=5000,
    ))


@pytest.fixture
def communes_addon(db_session: Session) -> Addon:
    return persist(db_session, Addon(
        code="COMMUNES",
        name="Commune supplémentaire",
        default_monthly_price_cents=1900,
        default_yearly_price_cents=19000,
    ))


@pytest.fixture
def meetings_feature(db_session: Session, standard_plan: SubscriptionPlan) -> Feature:
    """Fonctionnalité catalogue MEETINGS affectée à la formule Standard."""
    feature = persist(db_session, Feature(code="MEETINGS", name="Réunions"))
    persist(db_session, PlanFeatureAssignment(plan_id=standard_plan.id, feature_id=feature.id))
    return feature


@pytest.fixture
def number_formats(db_session: Session) -> list[DocumentNumberFormat]:
    """Formats par défaut des quatre familles de documents."""
    formats = []
    for family in ("DV", "BC", "FA", "AV"):
        formats.append(persist(db_session, DocumentNumberFormat(
            family=family,
            prefix=family,
            separator="-",
            sequence_digits=5,
            is_default=True,
        )))
    return formats


# =============================================================================
# MODEL FIXTURES - Tenants
# =============================================================================

@pytest.fixture
def mairie(db_session: Session, standard_plan: SubscriptionPlan) -> Tenant:
    """Mairie autonome, formule Standard, facturation mensuelle."""
    return persist(db_session, Tenant(
        code="MAIRIE-VILLEFRANCHE",
        name="Mairie de Villefranche",
        siret="21690259500017",
        contact_email="contact@villefranche.fr",
        tenant_type=TenantType.MAIRIE,
        subscription_plan_id=standard_plan.id,
        billing_interval=BillingInterval.MONTHLY,
        payment_method=PaymentMethod.STRIPE,
    ))


@pytest.fixture
def epci(db_session: Session, epci_plan: SubscriptionPlan) -> Tenant:
    """EPCI, formule EPCI (10 communes incluses)."""
    return persist(db_session, Tenant(
        code="CC-BEAUJOLAIS",
        name="Communauté de communes du Beaujolais",
        tenant_type=TenantType.EPCI,
        subscription_plan_id=epci_plan.id,
        billing_interval=BillingInterval.YEARLY,
        payment_method=PaymentMethod.ADMINISTRATIVE_MANDATE,
    ))


@pytest.fixture
def commune(db_session: Session, epci: Tenant) -> Tenant:
    """Commune rattachée à l'EPCI, sans formule propre."""
    return persist(db_session, Tenant(
        code="MAIRIE-ANSE",
        name="Mairie d'Anse",
        tenant_type=TenantType.MAIRIE,
        parent_epci_id=epci.id,
    ))


# =============================================================================
# API FIXTURES
# =============================================================================

@pytest.fixture
def actor_headers() -> dict:
    """En-têtes posés par la passerelle d'authentification."""
    return {"X-Actor-Id": "admin-1", "X-Actor-Type": "SUPER_ADMIN"}


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Client de test FastAPI.

    Override get_db pour utiliser la session SQLite de test.
    """
    from app.database.session import get_db

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def authenticated_client(client: TestClient, actor_headers: dict) -> TestClient:
    """Client portant les en-têtes X-Actor-* d'un opérateur."""
    client.headers.update(actor_headers)
    return client

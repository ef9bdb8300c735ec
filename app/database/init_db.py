"""
Initialisation de la base de données CivicLink Billing.
Crée les tables puis le catalogue : formules, options, fonctionnalités et
formats de numérotation des documents légaux.
"""

import logging
import sys
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.logging_config import configure_logging
from app.database.base_class import Base
from app.database.session import engine, db_session, check_database_connection
# =============================================================================
# IMPORTS DES MODÈLES (via le module centralisé)
# =============================================================================
from app.models import (
    Addon,
    DocumentFamily,
    DocumentNumberFormat,
    Feature,
    PlanFeatureAssignment,
    SubscriptionPlan,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DONNÉES INITIALES
# =============================================================================

INITIAL_PLANS: List[Dict] = [
    {
        "code": "FREE_TRIAL",
        "name": "Essai gratuit",
        "description": "Découverte de la plateforme pendant la période d'essai",
        "monthly_price_cents": 0,
        "yearly_price_cents": 0,
        "max_admins": 1,
        "associations_included": 0,
        "communes_included": 0,
        "has_ideas": True,
        "has_incidents": False,
        "has_meetings": False,
        "is_free": True,
    },
    {
        "code": "STANDARD",
        "name": "Standard",
        "description": "Accès aux fonctionnalités essentielles pour les petites structures",
        "monthly_price_cents": 4900,
        "yearly_price_cents": 49000,
        "max_admins": 2,
        "associations_included": 5,
        "communes_included": 0,
        "has_ideas": True,
        "has_incidents": True,
        "has_meetings": True,
    },
    {
        "code": "PREMIUM",
        "name": "Premium",
        "description": "Accès complet avec support prioritaire pour les structures moyennes",
        "monthly_price_cents": 9900,
        "yearly_price_cents": 99000,
        "max_admins": 5,
        "associations_included": 20,
        "communes_included": 0,
        "has_ideas": True,
        "has_incidents": True,
        "has_meetings": True,
    },
    {
        "code": "EPCI",
        "name": "Intercommunalité",
        "description": "Formule mutualisée pour un EPCI et ses communes membres",
        "monthly_price_cents": 29900,
        "yearly_price_cents": 299000,
        "max_admins": 10,
        "associations_included": 50,
        "communes_included": 10,
        "has_ideas": True,
        "has_incidents": True,
        "has_meetings": True,
    },
]

INITIAL_ADDONS: List[Dict] = [
    {"code": "ADMIN", "name": "Administrateur supplémentaire",
     "default_monthly_price_cents": 900, "default_yearly_price_cents": 9000},
    {"code": "ASSOCIATIONS", "name": "Associations supplémentaires",
     "default_monthly_price_cents": 500, "default_yearly_price_cents": 5000},
    {"code": "COMMUNES", "name": "Communes supplémentaires",
     "default_monthly_price_cents": 1900, "default_yearly_price_cents": 19000},
]

INITIAL_FEATURES: List[Dict] = [
    {"code": "IDEAS", "name": "Boîte à idées", "plans": ["FREE_TRIAL", "STANDARD", "PREMIUM", "EPCI"]},
    {"code": "INCIDENTS", "name": "Signalements", "plans": ["STANDARD", "PREMIUM", "EPCI"]},
    {"code": "MEETINGS", "name": "Réunions publiques", "plans": ["STANDARD", "PREMIUM", "EPCI"]},
]

INITIAL_NUMBER_FORMATS: List[Dict] = [
    {"family": DocumentFamily.QUOTE.value, "prefix": "DV"},
    {"family": DocumentFamily.ORDER.value, "prefix": "BC"},
    {"family": DocumentFamily.INVOICE.value, "prefix": "FA"},
    {"family": DocumentFamily.CREDIT_NOTE.value, "prefix": "AV"},
]


# =============================================================================
# 1. CRÉATION DES TABLES
# =============================================================================

def create_all_tables() -> bool:
    """
    Crée toutes les tables de la base de données.

    Utilise les métadonnées de Base qui contiennent tous les modèles
    importés via app/models.

    Returns:
        True si succès, False sinon
    """
    try:
        logger.info("📦 Création des tables...")
        Base.metadata.create_all(bind=engine)

        table_names = list(Base.metadata.tables.keys())
        logger.info(f"✅ {len(table_names)} tables créées : {', '.join(sorted(table_names))}")

        return True
    except Exception as e:
        logger.error(f"❌ Erreur lors de la création des tables : {e}")
        return False


def drop_all_tables() -> bool:
    """
    Supprime toutes les tables de la base de données.

    ⚠️ ATTENTION : Cette action est irréversible !

    Returns:
        True si succès, False sinon
    """
    try:
        logger.warning("❗️ Suppression de toutes les tables...")
        Base.metadata.drop_all(bind=engine)
        logger.info("✅ Toutes les tables ont été supprimées")
        return True
    except Exception as e:
        logger.error(f"❌ Erreur lors de la suppression des tables : {e}")
        return False


# =============================================================================
# 2. CATALOGUE
# =============================================================================

def init_plans(db: Session) -> Dict[str, SubscriptionPlan]:
    """
    Crée ou met à jour les formules d'abonnement.

    Les formules existantes sont mises à jour (prix, quotas inclus) :
    le seed peut être rejoué sans doublon.
    """
    logger.info("💶 Initialisation des formules...")

    plans: Dict[str, SubscriptionPlan] = {}
    for plan_data in INITIAL_PLANS:
        plan = db.execute(
            select(SubscriptionPlan).where(SubscriptionPlan.code == plan_data["code"])
        ).scalar_one_or_none()

        if plan:
            for key, value in plan_data.items():
                setattr(plan, key, value)
            logger.debug(f"   ℹ️ {plan_data['code']} mise à jour")
        else:
            plan = SubscriptionPlan(**plan_data)
            db.add(plan)
            logger.info(f"   ✅ {plan_data['code']} créée")
        plans[plan.code] = plan

    db.flush()
    return plans


def init_addons(db: Session) -> Dict[str, Addon]:
    """Crée les options du catalogue (ADMIN, ASSOCIATIONS, COMMUNES)."""
    logger.info("🧩 Initialisation des options...")

    addons: Dict[str, Addon] = {}
    for addon_data in INITIAL_ADDONS:
        addon = db.execute(
            select(Addon).where(Addon.code == addon_data["code"])
        ).scalar_one_or_none()

        if addon is None:
            addon = Addon(**addon_data)
            db.add(addon)
            logger.info(f"   ✅ {addon_data['code']} créée")
        addons[addon.code] = addon

    db.flush()
    return addons


def init_features(db: Session, plans: Dict[str, SubscriptionPlan]) -> List[Feature]:
    """Crée les fonctionnalités et leur affectation aux formules."""
    logger.info("✨ Initialisation des fonctionnalités...")

    features = []
    for feature_data in INITIAL_FEATURES:
        feature = db.execute(
            select(Feature).where(Feature.code == feature_data["code"])
        ).scalar_one_or_none()

        if feature is None:
            feature = Feature(code=feature_data["code"], name=feature_data["name"])
            db.add(feature)
            db.flush()
            logger.info(f"   ✅ {feature_data['code']} créée")

        for plan_code in feature_data["plans"]:
            plan = plans[plan_code]
            assigned = db.execute(
                select(PlanFeatureAssignment.id).where(
                    PlanFeatureAssignment.plan_id == plan.id,
                    PlanFeatureAssignment.feature_id == feature.id,
                )
            ).first()
            if assigned is None:
                db.add(PlanFeatureAssignment(plan_id=plan.id, feature_id=feature.id))
        features.append(feature)

    db.flush()
    return features


def init_number_formats(db: Session) -> List[DocumentNumberFormat]:
    """
    Crée le format par défaut de chaque famille de documents.

    Format : PRÉFIXE-AAAA-NNNNN (ex: FA-2026-00042).
    """
    logger.info("🔢 Initialisation des formats de numérotation...")

    formats = []
    for format_data in INITIAL_NUMBER_FORMATS:
        existing = db.execute(
            select(DocumentNumberFormat).where(
                DocumentNumberFormat.family == format_data["family"],
                DocumentNumberFormat.is_default.is_(True),
            )
        ).scalar_one_or_none()

        if existing:
            formats.append(existing)
            continue

        number_format = DocumentNumberFormat(
            family=format_data["family"],
            prefix=format_data["prefix"],
            separator="-",
            sequence_digits=5,
            include_month=False,
            is_default=True,
            is_active=True,
        )
        db.add(number_format)
        formats.append(number_format)
        logger.info(f"   ✅ Format {format_data['family']} créé")

    db.flush()
    return formats


# =============================================================================
# 3. INITIALISATION COMPLÈTE
# =============================================================================

def init_database(drop_existing: bool = False) -> bool:
    """
    Initialise complètement la base de données.

    1. Vérifie la connexion
    2. Supprime les tables (si demandé)
    3. Crée les tables
    4. Crée le catalogue et les formats de numérotation

    En production, le schéma est géré par Alembic : n'utiliser create_all
    que pour le développement et les démonstrations.

    Returns:
        True si initialisation réussie, False sinon
    """
    logger.info("=" * 60)
    logger.info("🚀 INITIALISATION DE LA BASE DE DONNÉES CIVICLINK BILLING")
    logger.info("=" * 60)

    logger.info("📡 Vérification de la connexion PostgreSQL...")
    if not check_database_connection():
        logger.error("❌ Impossible de se connecter à PostgreSQL")
        logger.error("   Vérifiez que PostgreSQL est démarré et que DATABASE_URL est correct")
        return False
    logger.info("✅ Connexion PostgreSQL OK")

    if drop_existing:
        logger.warning("⚠️ Mode DROP_EXISTING activé")
        if not drop_all_tables():
            return False

    if not create_all_tables():
        return False

    try:
        with db_session() as db:
            plans = init_plans(db)
            addons = init_addons(db)
            features = init_features(db, plans)
            formats = init_number_formats(db)
    except Exception as e:
        logger.exception(f"❌ Erreur lors de l'initialisation des données : {e}")
        return False

    logger.info("=" * 60)
    logger.info("✅ INITIALISATION TERMINÉE AVEC SUCCÈS")
    logger.info("=" * 60)
    logger.info(
        f"📋 Résumé : {len(plans)} formules, {len(addons)} options, "
        f"{len(features)} fonctionnalités, {len(formats)} formats de numérotation"
    )
    logger.info("🚀 Prochaine étape : uvicorn app.main:app --reload")

    return True


# =============================================================================
# 4. POINT D'ENTRÉE CLI
# =============================================================================

def main():
    """
    Point d'entrée pour exécution en ligne de commande.

    Usage:
        python -m app.database.init_db
        python -m app.database.init_db --drop
    """
    import argparse

    parser = argparse.ArgumentParser(
        description="Initialise la base de données CivicLink Billing"
    )
    parser.add_argument(
        '--drop',
        action='store_true',
        help="Supprime les tables existantes avant création (ATTENTION !)"
    )

    args = parser.parse_args()
    configure_logging()

    if args.drop:
        print("\n⚠️  ATTENTION : Vous allez SUPPRIMER toutes les tables existantes !")
        print("   Toutes les données seront perdues.\n")
        response = input("Êtes-vous sûr ? (oui/non) : ")
        if response.lower() != 'oui':
            print("Annulé.")
            sys.exit(0)

    success = init_database(drop_existing=args.drop)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()

"""
Module Catalog - Catalogue global des formules et options.

Ce module contient :
- SubscriptionPlan : Formules d'abonnement (quantités incluses, prix)
- Addon / PlanAddonAccess : Options achetables et surcharges de prix par formule
- Feature / PlanFeatureAssignment : Fonctionnalités affectées aux formules
"""

from app.models.catalog.subscription_plan import SubscriptionPlan
from app.models.catalog.addon import Addon, PlanAddonAccess
from app.models.catalog.feature import Feature, PlanFeatureAssignment

__all__ = [
    "SubscriptionPlan",
    "Addon",
    "PlanAddonAccess",
    "Feature",
    "PlanFeatureAssignment",
]

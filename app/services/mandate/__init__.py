"""
Parcours de commande sur mandat administratif.

- snapshot : validation JSON Schema des options figées
- state_machine : MandateOrderService (transitions, numérotation, journal)

Pas de réexport ici : le résolveur de quotas importe snapshot sans
charger la machine à états.
"""

"""
Services métier du moteur de facturation CivicLink.

Modules disponibles:
- numbering : numérotation atomique des documents légaux
- quota : résolution des quotas (mutualisation EPCI)
- billing : changements de facturation, prorata et grand livre
- mandate : commandes sur mandat administratif
- lifecycle : cycle de vie et suppression des tenants
- notifications : outbox et expéditeurs
"""

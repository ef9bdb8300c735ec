"""
Workers hors requête HTTP.

- billing_scheduler : applique les changements de facturation échus
- notification_worker : livre les notifications de l'outbox
"""

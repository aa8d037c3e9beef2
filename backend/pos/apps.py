# pos/apps.py
from django.apps import AppConfig


class POSConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "pos"
    verbose_name = "Point of Sale"

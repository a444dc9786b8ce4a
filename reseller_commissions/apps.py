from django.apps import AppConfig


class ResellerCommissionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "reseller_commissions"
    verbose_name = "Reseller Commissions"

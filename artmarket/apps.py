from django.apps import AppConfig


class ArtmarketConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'artmarket'
    verbose_name = 'Art Market'

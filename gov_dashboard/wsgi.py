"""WSGI entrypoint for the governance dashboard."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "gov_dashboard.settings")

application = get_wsgi_application()

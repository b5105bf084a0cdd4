"""
WSGI config for exitflow project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "exitflow.settings")

application = get_wsgi_application()

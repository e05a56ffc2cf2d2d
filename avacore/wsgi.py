"""
WSGI config for avacore project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "avacore.settings")

application = get_wsgi_application()

"""
WSGI config for civic_issues_backend project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'civic_issues_backend.settings')

application = get_wsgi_application()

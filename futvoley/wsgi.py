"""WSGI config for the futvoley project."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'futvoley.settings')

application = get_wsgi_application()

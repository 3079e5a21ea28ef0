"""
WSGI config for the chat service.

WSGI (Web Server Gateway Interface) is the traditional Python web server
interface. ASGI (config.asgi) is the primary entry point; WSGI is provided
for traditional deployment options.

This file exposes the WSGI callable as a module-level variable named `application`.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()

"""
WSGI config for cycle_assembly project.
"""

import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'cycle_assembly.settings')
application = get_wsgi_application()

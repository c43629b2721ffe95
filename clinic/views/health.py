"""Liveness probe: database round-trip plus a cache write/read."""
import logging

from django.core.cache import cache
from django.db import connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    checks = {}
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        checks['db'] = bool(row and row[0] == 1)
    except Exception as e:
        logger.error('Health check: database unavailable: %s', e)
        return JsonResponse({'ok': False, 'db': False, 'error': str(e)}, status=500)
    try:
        cache.set('healthz:ping', 1, 5)
        checks['cache'] = cache.get('healthz:ping') == 1
    except Exception as e:
        logger.warning('Health check: cache unavailable: %s', e)
        checks['cache'] = False
    return JsonResponse({'ok': checks['db'], **checks})

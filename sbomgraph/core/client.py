from datetime import timedelta

import requests_cache
import structlog
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from sbomgraph.__version__ import __version__

logger = structlog.get_logger('client')


def get_http_client(
    expire_after: int = 3600,
    retries: int = 2,
    pool_size: int = 16,
) -> requests_cache.CachedSession:
    """
    Returns a requests session with retry logic and an in-memory response cache.

    The cache lives only as long as the session, so nothing is reused
    across generation runs.
    """
    # Cache 200 OK and 404 Not Found (negative caching)
    session = requests_cache.CachedSession(
        backend='memory',
        expire_after=timedelta(seconds=expire_after),
        allowable_codes=[200, 404],
        allowable_methods=['GET', 'HEAD'],
    )
    session.headers.update({'User-Agent': f"sbomgraph/{__version__}"})

    def logging_hook(response, *args, **kwargs):
        if getattr(response, '_logged', False):
            return
        response._logged = True

        log_kwargs = {
            'method': response.request.method,
            'url': response.url,
            'status': response.status_code,
            'elapsed': f"{response.elapsed.total_seconds():.3f}s",
            'cached': getattr(response, 'from_cache', False),
        }

        remaining = response.headers.get('X-RateLimit-Remaining')
        limit = response.headers.get('X-RateLimit-Limit')
        if remaining and limit:
            log_kwargs['ratelimit'] = f"{remaining}/{limit}"

        logger.debug('HTTP Request', **log_kwargs)
    session.hooks['response'].append(logging_hook)

    retry_strategy = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[500, 502, 503, 504],
    )

    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=retry_strategy,
    )

    session.mount('https://', adapter)
    session.mount('http://', adapter)

    logger.debug('Initialized HTTP Client', retries=retries, pool_size=pool_size)

    return session

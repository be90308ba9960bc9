"""Core middleware."""
from django.conf import settings
from django.utils.cache import add_never_cache_headers


class ApiNeverCacheMiddleware:
    """Mark every API response as never cacheable.

    Review queues and achievement figures change with each approval, so a
    browser or proxy must not serve them from cache.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.prefix = getattr(settings, "API_URL_PREFIX", "/api/")

    def __call__(self, request):
        response = self.get_response(request)
        if request.path.startswith(self.prefix):
            add_never_cache_headers(response)
        return response

from __future__ import annotations

import logging
from typing import Callable, Sequence

from django.conf import settings
from django.http import HttpRequest, HttpResponse

from .services import get_link_config, rewrite_html

logger = logging.getLogger(__name__)

DEFAULT_SKIP_PATHS = ('/static/',)


class ExternalLinkMiddleware:
    """Rewrite external links in HTML responses when server mode is active."""

    def __init__(
        self,
        get_response: Callable[[HttpRequest], HttpResponse],
        *,
        skip_paths: Sequence[str] | None = None,
    ) -> None:
        self.get_response = get_response
        if skip_paths is None:
            skip_paths = getattr(settings, 'EXTLINKER_SKIP_PATHS', DEFAULT_SKIP_PATHS)
        self.skip_paths = tuple(skip_paths)

    def __call__(self, request: HttpRequest) -> HttpResponse:
        response = self.get_response(request)

        if not self._should_process(request, response):
            return response

        config = get_link_config()
        if not config.enabled or config.is_client_mode:
            return response

        charset = response.charset or 'utf-8'
        try:
            content = response.content.decode(charset)
        except UnicodeDecodeError:
            logger.warning('Skipping link rewrite for %s: undecodable body', request.path)
            return response

        rewritten = rewrite_html(content, request, config=config)
        if rewritten != content:
            response.content = rewritten.encode(charset)
            if response.has_header('Content-Length'):
                response['Content-Length'] = str(len(response.content))
        return response

    def _should_process(self, request: HttpRequest, response: HttpResponse) -> bool:
        if getattr(response, 'streaming', False):
            return False
        if response.has_header('Content-Encoding'):
            return False
        if 'text/html' not in response.get('Content-Type', ''):
            return False
        return not request.path.startswith(self.skip_paths)


def external_link_middleware(get_response: Callable[[HttpRequest], HttpResponse]) -> ExternalLinkMiddleware:
    return ExternalLinkMiddleware(get_response)

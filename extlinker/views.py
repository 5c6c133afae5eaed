"""Django views for the extlinker app.

These views expose the link engine over HTTP: rewriting submitted HTML,
reporting link statistics, handing configuration to the client-side
processor and serving the stylesheet for annotated links.
"""

from __future__ import annotations

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .engine.rewrite import process_content
from .engine.stats import external_domains, link_stats
from .forms import ContentForm, RewriteForm
from .services import generate_css, get_link_config, get_script_data, get_site_identity


def _form_errors(form) -> JsonResponse:
    return JsonResponse({'errors': form.errors.get_json_data()}, status=400)


@csrf_exempt
@require_POST
def rewrite_content(request: HttpRequest) -> HttpResponse:
    """Rewrite external links in the submitted HTML and report what was found."""

    form = RewriteForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)

    config = get_link_config()
    overrides = {}
    if form.cleaned_data['exclude_domains']:
        overrides['exclude_domains'] = form.cleaned_data['exclude_domains']
    if form.cleaned_data['exclude_classes']:
        overrides['exclude_classes'] = form.cleaned_data['exclude_classes']
    if overrides:
        config = config.replace(**overrides)

    content: str = form.cleaned_data['content']
    site = get_site_identity(request, site_url=form.cleaned_data['site_url'] or None)
    linked_html = process_content(content, site, config, form.cleaned_data['content_type'] or None)

    return JsonResponse(
        {
            'html': linked_html,
            'changed': linked_html != content,
            'mode': config.processing_mode,
            'stats': link_stats(content, site, config).as_dict(),
        }
    )


@csrf_exempt
@require_POST
def content_stats(request: HttpRequest) -> HttpResponse:
    """Count internal and external links and list the external domains."""

    form = ContentForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)

    content: str = form.cleaned_data['content']
    site = get_site_identity(request, site_url=form.cleaned_data['site_url'] or None)
    return JsonResponse(
        {
            'stats': link_stats(content, site, get_link_config()).as_dict(),
            'domains': external_domains(content, site),
        }
    )


@require_GET
def script_data(request: HttpRequest) -> HttpResponse:
    """Expose the site identity (and, in client mode, the link options)."""

    return JsonResponse(get_script_data(request))


@require_GET
def stylesheet(request: HttpRequest) -> HttpResponse:
    return HttpResponse(generate_css(), content_type='text/css; charset=utf-8')

from __future__ import annotations

import importlib
import sys
import tempfile
import textwrap
from io import StringIO
from pathlib import Path

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.http import HttpResponse, JsonResponse
from django.template import Context, Template
from django.test import RequestFactory, SimpleTestCase, override_settings
from django.urls import reverse
from django.utils.safestring import mark_safe

from extlinker.forms import RewriteForm
from extlinker.middleware import ExternalLinkMiddleware
from extlinker.services import generate_css, get_link_config, get_script_data, get_site_identity, rewrite_html

SITE_SETTINGS = {'SITE_URL': 'https://mysite.com', 'add_icon': False}
EXPECTED_LINK = (
    '<a target="_blank" rel="nofollow noopener" class="selm-external-link" '
    'href="https://other.org/page">Link</a>'
)


class RewriteFormTests(SimpleTestCase):
    def form(self, **overrides):
        data = {
            'content': '<p><a href="https://other.org">x</a></p>',
            'site_url': '',
            'content_type': '',
            'exclude_domains': '',
            'exclude_classes': '',
        }
        data.update(overrides)
        return RewriteForm(data)

    def test_exclude_domains_normalises_and_dedupes(self) -> None:
        form = self.form(exclude_domains=textwrap.dedent(
            """
            www.Partner.org
            partner.org

            shop.example.com
            """
        ))
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['exclude_domains'], ['partner.org', 'shop.example.com'])

    def test_exclude_domains_reports_line_number(self) -> None:
        form = self.form(exclude_domains='good.org\nnot a domain')
        self.assertFalse(form.is_valid())
        self.assertIn('Excluded domain line 2', form.errors['exclude_domains'][0])

    def test_exclude_classes_rejects_invalid_names(self) -> None:
        form = self.form(exclude_classes='skip-me\n9lives')
        self.assertFalse(form.is_valid())
        self.assertIn('Excluded class line 2', form.errors['exclude_classes'][0])

    def test_content_whitespace_is_kept(self) -> None:
        form = self.form(content='  <p>x</p>\n')
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['content'], '  <p>x</p>\n')

    def test_site_url_without_scheme_assumes_https(self) -> None:
        form = self.form(site_url='mysite.com')
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['site_url'], 'https://mysite.com')


def test_test_settings_need_no_environment(monkeypatch) -> None:
    for name in ('DJANGO_SECRET_KEY', 'DJANGO_DEBUG', 'PYTEST_CURRENT_TEST'):
        monkeypatch.delenv(name, raising=False)
    for module in ('extlinker_tool.settings', 'extlinker_tool.test_settings'):
        monkeypatch.delitem(sys.modules, module, raising=False)

    test_settings = importlib.import_module('extlinker_tool.test_settings')

    assert test_settings.DEBUG is True
    assert test_settings.SECRET_KEY == 'test-secret'


@override_settings(EXTLINKER=SITE_SETTINGS)
class ServiceTests(SimpleTestCase):
    def setUp(self) -> None:
        cache.clear()
        self.factory = RequestFactory()

    def test_settings_override_defaults(self) -> None:
        config = get_link_config()
        self.assertFalse(config.add_icon)
        self.assertTrue(config.add_nofollow)

    def test_config_file_is_layered_under_settings(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'links.yaml'
            path.write_text('add_icon: true\nadd_nofollow: false\n', encoding='utf-8')
            with self.settings(EXTLINKER_CONFIG_FILE=str(path)):
                config = get_link_config()
        self.assertFalse(config.add_icon)
        self.assertFalse(config.add_nofollow)

    def test_site_identity_precedence(self) -> None:
        request = self.factory.get('/')
        self.assertEqual(get_site_identity(request, site_url='https://explicit.org').host, 'explicit.org')
        self.assertEqual(get_site_identity(request).host, 'mysite.com')
        with self.settings(EXTLINKER={}):
            site = get_site_identity(request)
            self.assertEqual((site.scheme, site.host), ('http', 'testserver'))

    def test_missing_site_logs_warning(self) -> None:
        with self.settings(EXTLINKER={}):
            with self.assertLogs('extlinker.services', level='WARNING'):
                self.assertEqual(get_site_identity().host, '')

    def test_rewrite_html_uses_settings(self) -> None:
        self.assertEqual(rewrite_html('<a href="https://other.org/page">Link</a>'), EXPECTED_LINK)

    def test_script_data_includes_config_only_in_client_mode(self) -> None:
        self.assertEqual(get_script_data(), {'site_host': 'mysite.com', 'site_scheme': 'https'})
        cache.clear()
        with self.settings(EXTLINKER={**SITE_SETTINGS, 'processing_mode': 'client'}):
            data = get_script_data()
        self.assertEqual(data['config']['addIcon'], False)
        self.assertEqual(data['config']['excludeClasses'], ['no-external'])

    def test_script_data_is_cached(self) -> None:
        first = get_script_data()
        with self.settings(EXTLINKER={**SITE_SETTINGS, 'processing_mode': 'client'}):
            self.assertEqual(get_script_data(), first)

    def test_generate_css_appends_custom_rules(self) -> None:
        css = generate_css(get_link_config().replace(custom_css='.x { color: red; }', icon_type='fontawesome'))
        self.assertIn('.selm-external-link', css)
        self.assertIn('.selm-external-icon.fa', css)
        self.assertTrue(css.rstrip().endswith('.x { color: red; }'))


@override_settings(EXTLINKER=SITE_SETTINGS)
class ApiViewTests(SimpleTestCase):
    def setUp(self) -> None:
        cache.clear()

    def test_rewrite_returns_html_and_stats(self) -> None:
        content = '<p><a href="https://other.org/page">Link</a> <a href="/about">About</a></p>'
        response = self.client.post(reverse('extlinker:rewrite'), {'content': content})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload['html'], f'<p>{EXPECTED_LINK} <a href="/about">About</a></p>')
        self.assertTrue(payload['changed'])
        self.assertEqual(payload['mode'], 'server')
        self.assertEqual(
            payload['stats'],
            {'total_links': 2, 'external_links': 1, 'internal_links': 1, 'processed_links': 1},
        )

    def test_rewrite_honours_request_exclusions(self) -> None:
        content = '<a href="https://shop.partner.org">Shop</a>'
        response = self.client.post(
            reverse('extlinker:rewrite'),
            {'content': content, 'exclude_domains': 'partner.org'},
        )
        payload = response.json()
        self.assertEqual(payload['html'], content)
        self.assertFalse(payload['changed'])
        self.assertEqual(payload['stats']['processed_links'], 0)

    def test_rewrite_skips_unlisted_content_type(self) -> None:
        content = '<a href="https://other.org/page">Link</a>'
        response = self.client.post(reverse('extlinker:rewrite'), {'content': content, 'content_type': 'product'})
        self.assertFalse(response.json()['changed'])

    def test_rewrite_in_client_mode_returns_content_unchanged(self) -> None:
        content = '<a href="https://other.org/page">Link</a>'
        with self.settings(EXTLINKER={**SITE_SETTINGS, 'processing_mode': 'client'}):
            payload = self.client.post(reverse('extlinker:rewrite'), {'content': content}).json()
        self.assertEqual(payload['html'], content)
        self.assertEqual(payload['mode'], 'client')

    def test_rewrite_validation_errors(self) -> None:
        response = self.client.post(reverse('extlinker:rewrite'), {'content': '<p></p>', 'exclude_domains': 'bad domain'})
        self.assertEqual(response.status_code, 400)
        errors = response.json()['errors']
        self.assertIn('Excluded domain line 1', errors['exclude_domains'][0]['message'])

    def test_rewrite_requires_post(self) -> None:
        self.assertEqual(self.client.get(reverse('extlinker:rewrite')).status_code, 405)

    def test_stats_lists_external_domains(self) -> None:
        content = (
            '<a href="https://other.org/a">a</a><a href="https://www.other.org/b">b</a>'
            '<a href="https://docs.net">c</a><a href="https://mysite.com/">d</a>'
        )
        response = self.client.post(
            reverse('extlinker:stats'),
            {'content': content, 'site_url': 'https://mysite.com'},
        )
        payload = response.json()
        self.assertEqual(payload['domains'], ['other.org', 'docs.net'])
        self.assertEqual(payload['stats']['external_links'], 3)
        self.assertEqual(payload['stats']['internal_links'], 1)

    def test_stats_requires_content(self) -> None:
        response = self.client.post(reverse('extlinker:stats'), {})
        self.assertEqual(response.status_code, 400)
        self.assertIn('content', response.json()['errors'])

    def test_script_data_endpoint(self) -> None:
        response = self.client.get(reverse('extlinker:script_data'))
        self.assertEqual(response.json(), {'site_host': 'mysite.com', 'site_scheme': 'https'})

    def test_stylesheet_endpoint(self) -> None:
        with self.settings(EXTLINKER={**SITE_SETTINGS, 'custom_css': '.selm-external-link { color: green; }'}):
            response = self.client.get(reverse('extlinker:stylesheet'))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response['Content-Type'].startswith('text/css'))
        self.assertIn(b'color: green', response.content)


@override_settings(EXTLINKER=SITE_SETTINGS, EXTLINKER_SKIP_PATHS=['/static/'])
class ExternalLinkMiddlewareTests(SimpleTestCase):
    def setUp(self) -> None:
        self.factory = RequestFactory()

    def run_middleware(self, response: HttpResponse, path: str = '/article/') -> HttpResponse:
        middleware = ExternalLinkMiddleware(lambda request: response)
        return middleware(self.factory.get(path))

    def html_response(self) -> HttpResponse:
        response = HttpResponse('<p><a href="https://other.org/page">Link</a></p>')
        response['Content-Length'] = str(len(response.content))
        return response

    def test_html_response_is_rewritten(self) -> None:
        response = self.run_middleware(self.html_response())
        self.assertEqual(response.content.decode(), f'<p>{EXPECTED_LINK}</p>')
        self.assertEqual(response['Content-Length'], str(len(response.content)))

    def test_non_html_response_is_untouched(self) -> None:
        response = self.run_middleware(JsonResponse({'html': '<a href="https://other.org">x</a>'}))
        self.assertNotIn(b'selm-external-link', response.content)

    def test_skip_paths_are_untouched(self) -> None:
        response = self.run_middleware(self.html_response(), path='/static/page.html')
        self.assertNotIn(b'selm-external-link', response.content)

    def test_client_mode_is_untouched(self) -> None:
        with self.settings(EXTLINKER={**SITE_SETTINGS, 'processing_mode': 'client'}):
            response = self.run_middleware(self.html_response())
        self.assertNotIn(b'selm-external-link', response.content)

    def test_disabled_is_untouched(self) -> None:
        with self.settings(EXTLINKER={**SITE_SETTINGS, 'enabled': False}):
            response = self.run_middleware(self.html_response())
        self.assertNotIn(b'selm-external-link', response.content)

    def test_compressed_response_is_untouched(self) -> None:
        response = self.html_response()
        response['Content-Encoding'] = 'gzip'
        self.assertNotIn(b'selm-external-link', self.run_middleware(response).content)

    def test_request_host_used_without_site_url(self) -> None:
        response = HttpResponse('<a href="http://testserver/x">self</a><a href="https://other.org">other</a>')
        with self.settings(EXTLINKER={'add_icon': False}):
            rewritten = self.run_middleware(response).content.decode()
        self.assertIn('<a href="http://testserver/x">self</a>', rewritten)
        self.assertEqual(rewritten.count('selm-external-link'), 1)


@override_settings(EXTLINKER=SITE_SETTINGS)
class TemplateTagTests(SimpleTestCase):
    def setUp(self) -> None:
        cache.clear()

    def render(self, source: str, **context) -> str:
        return Template('{% load extlinker %}' + source).render(Context(context))

    def test_external_links_filter(self) -> None:
        body = mark_safe('<a href="https://other.org/page">Link</a>')
        self.assertEqual(self.render('{{ body|external_links }}', body=body), EXPECTED_LINK)

    def test_external_links_filter_respects_content_type(self) -> None:
        body = mark_safe('<a href="https://other.org/page">Link</a>')
        self.assertEqual(self.render('{{ body|external_links:"product" }}', body=body), body)

    def test_head_tag_in_server_mode(self) -> None:
        output = self.render('{% extlinker_head %}')
        self.assertIn('<style id="selm-styles">', output)
        self.assertNotIn('selm-data', output)

    def test_head_tag_in_client_mode(self) -> None:
        with self.settings(EXTLINKER={**SITE_SETTINGS, 'processing_mode': 'client'}):
            output = self.render('{% extlinker_head %}')
        self.assertIn('<script id="selm-data" type="application/json">', output)
        self.assertIn('mysite.com', output)
        self.assertIn('addIcon', output)

    def test_head_tag_disabled(self) -> None:
        with self.settings(EXTLINKER={**SITE_SETTINGS, 'enabled': False}):
            self.assertEqual(self.render('{% extlinker_head %}'), '')


@override_settings(EXTLINKER=SITE_SETTINGS)
class RewriteLinksCommandTests(SimpleTestCase):
    html = '<html><body><p><a href="https://other.org/page">Link</a> <a href="/a">A</a></p></body></html>'

    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.source = Path(self.tmp.name) / 'page.html'
        self.source.write_text(self.html, encoding='utf-8')

    def test_server_mode_writes_to_stdout(self) -> None:
        out = StringIO()
        call_command('rewrite_links', str(self.source), stdout=out)
        self.assertIn(EXPECTED_LINK, out.getvalue())

    def test_client_mode_writes_output_file(self) -> None:
        target = Path(self.tmp.name) / 'out.html'
        out = StringIO()
        call_command(
            'rewrite_links',
            str(self.source),
            '--mode=client',
            '--site-url=https://mysite.com',
            f'--output={target}',
            '--batch-size=1',
            stdout=out,
        )
        result = target.read_text(encoding='utf-8')
        self.assertIn('selm-external-link', result)
        self.assertIn('rel="nofollow noopener"', result)
        self.assertIn('<a href="/a">A</a>', result)
        self.assertIn('client mode', out.getvalue())

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(CommandError):
            call_command('rewrite_links', str(Path(self.tmp.name) / 'missing.html'), stdout=StringIO())

    def test_invalid_batch_size_raises(self) -> None:
        with self.assertRaises(CommandError):
            call_command('rewrite_links', str(self.source), '--batch-size=0', stdout=StringIO())

    def test_missing_site_raises(self) -> None:
        with self.settings(EXTLINKER={}):
            with self.assertRaises(CommandError):
                call_command('rewrite_links', str(self.source), stdout=StringIO())

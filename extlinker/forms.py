"""Forms for the extlinker API.

The forms validate content submitted for rewriting or analysis, along with
optional per-request exclusion overrides entered one per line.
"""

from __future__ import annotations

import re

from django import forms

_DOMAIN_RE = re.compile(r"^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.(?!-)[A-Za-z0-9-]{1,63}(?<!-))*$")
_CLASS_RE = re.compile(r"^-?[_A-Za-z][_A-Za-z0-9-]*$")


def _split_lines(raw_value: str) -> list[str]:
    return [line.strip() for line in raw_value.splitlines() if line.strip()]


class ContentForm(forms.Form):
    """Form used for submitting rendered HTML to analyse."""

    content = forms.CharField(
        strip=False,
        widget=forms.Textarea(attrs={'rows': 18}),
        label='Content',
        help_text='Rendered HTML containing the links to inspect.',
    )
    site_url = forms.URLField(
        required=False,
        assume_scheme='https',
        label='Site URL',
        help_text='Canonical base URL of the site (defaults to the configured site).',
    )


class RewriteForm(ContentForm):
    """Form used for rewriting external links in a block of HTML."""

    content_type = forms.CharField(
        required=False,
        max_length=50,
        label='Content type',
        help_text='Optional content type (e.g. post or page) checked against the enabled types.',
    )
    exclude_domains = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'rows': 4, 'placeholder': 'example.com\npartner.org'}),
        label='Excluded domains',
        help_text='Optional. One domain per line; subdomains are excluded too.',
    )
    exclude_classes = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'rows': 3, 'placeholder': 'no-external'}),
        label='Excluded classes',
        help_text='Optional. One CSS class per line.',
    )

    def clean_exclude_domains(self) -> list[str]:
        """Parse newline-delimited domains, dropping a leading ``www.``."""

        parsed: list[str] = []
        for index, line in enumerate(_split_lines(self.cleaned_data.get('exclude_domains', '')), start=1):
            domain = re.sub(r'^www\.', '', line.lower())
            if not _DOMAIN_RE.match(domain):
                raise forms.ValidationError(f'Excluded domain line {index} is not a valid domain: {line}')
            if domain not in parsed:
                parsed.append(domain)
        return parsed

    def clean_exclude_classes(self) -> list[str]:
        parsed: list[str] = []
        for index, line in enumerate(_split_lines(self.cleaned_data.get('exclude_classes', '')), start=1):
            if not _CLASS_RE.match(line):
                raise forms.ValidationError(f'Excluded class line {index} is not a valid class name: {line}')
            if line not in parsed:
                parsed.append(line)
        return parsed

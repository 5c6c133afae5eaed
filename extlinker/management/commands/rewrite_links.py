"""Rewrite external links in an HTML file from the command line."""

from __future__ import annotations

import asyncio
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from extlinker.engine.config import LinkConfig
from extlinker.engine.dom import LiveDocument
from extlinker.engine.live import DEFAULT_BATCH_SIZE, LiveLinkProcessor
from extlinker.engine.rewrite import rewrite
from extlinker.engine.scheduling import AsyncioScheduler
from extlinker.engine.types import SiteIdentity
from extlinker.services import get_link_config, get_site_identity


async def _process_live(html: str, site: SiteIdentity, config: LinkConfig, batch_size: int) -> str:
    document = LiveDocument(html)
    processor = LiveLinkProcessor(document, AsyncioScheduler(), batch_size=batch_size)
    processor.start(config, site)
    try:
        while processor.busy:
            await asyncio.sleep(0)
        return document.render()
    finally:
        processor.stop()


class Command(BaseCommand):
    help = 'Annotate external links in an HTML file using the server or client processor.'

    def add_arguments(self, parser) -> None:
        parser.add_argument('path', type=Path, help='HTML file to process.')
        parser.add_argument(
            '--mode',
            choices=('server', 'client'),
            default=None,
            help='Processor to use (defaults to the configured processing mode).',
        )
        parser.add_argument('--site-url', default=None, help='Canonical base URL of the site.')
        parser.add_argument('--output', type=Path, default=None, help='Write the result here instead of stdout.')
        parser.add_argument('--batch-size', type=int, default=DEFAULT_BATCH_SIZE)

    def handle(self, *args, **options) -> None:
        path: Path = options['path']
        try:
            html = path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as exc:
            raise CommandError(f'Unable to read {path}: {exc}') from exc

        if options['batch_size'] <= 0:
            raise CommandError('--batch-size must be greater than zero.')

        site = get_site_identity(site_url=options['site_url'])
        if not site.host:
            raise CommandError('Provide --site-url or set EXTLINKER["SITE_URL"].')

        config = get_link_config()
        mode = options['mode'] or config.processing_mode

        if mode == 'client':
            result = asyncio.run(_process_live(html, site, config, options["batch_size"]))
        else:
            result = rewrite(html, site, config)

        if options['output']:
            options['output'].write_text(result, encoding='utf-8')
            self.stdout.write(self.style.SUCCESS(f'Processed {path} in {mode} mode -> {options["output"]}'))
        else:
            self.stdout.write(result)

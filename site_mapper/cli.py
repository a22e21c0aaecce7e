#!/usr/bin/env python3
"""
Точка входа для запуска генератора карты сайта SiteMapper через командную строку.

Команды:
  generate  Обойти сайт, вывести статистику и записать sitemap.xml
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --url URL           Корневой URL сайта (или переменная окружения APP_URL)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Команда generate опции:
  --output PATH         Куда записать sitemap.xml (override output_path)
  --max-depth INT       Максимальная глубина обхода
  --max-queue-size INT  Сколько URL может попасть в очередь
  --concurrency INT     Число одновременных запросов
  --crawl-timeout SEC   Таймаут всего обхода (секунд)
  --json PATH           Сохранить JSON-отчёт об обходе
  --html PATH           Сохранить HTML-отчёт об обходе
  --template DIR        Папка с Jinja2-шаблонами для HTML

Коды выхода: 0 успех, 1 ошибка конфигурации или обхода,
2 robots.txt недоступен, 3 не удалось записать sitemap.

Пример:
  site-mapper --url https://example.com generate --output public/sitemap.xml --json crawl.json
"""
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, NoReturn

import click

from site_mapper import __version__
from site_mapper.aggregator import aggregate_results
from site_mapper.config import load_config
from site_mapper.crawler.models import CrawlResult
from site_mapper.engine import Engine
from site_mapper.exceptions import PolicyError, WriteError
from site_mapper.logger import init_logging
from site_mapper.report.html_report import render_html
from site_mapper.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])

EXIT_ERROR = 1
EXIT_POLICY = 2
EXIT_WRITE = 3


def print_error(message: str, code: int = EXIT_ERROR) -> NoReturn:
    click.secho(message, fg='red', err=True)
    sys.exit(code)


async def run_crawl(engine: Engine) -> CrawlResult:
    return await engine.crawl()


def _load(ctx: click.Context, overrides: Dict[str, Any]):
    data = {'base_url': ctx.obj.get('url'), **overrides}
    try:
        return load_config(ctx.obj.get('config_path'), data)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteMapper, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--url', '-u', 'url',
    envvar='APP_URL',
    default=None,
    help='Корневой URL сайта (override base_url).'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, url, log_level, log_file, log_format):
    """Группа команд SiteMapper CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['url'] = url


@cli.command('generate', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--output', '-o', 'output_path',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Куда записать sitemap.xml'
)
@click.option('--max-depth', 'max_depth', type=int, default=None, help='Максимальная глубина обхода')
@click.option('--max-queue-size', 'max_queue_size', type=int, default=None, help='Лимит очереди URL')
@click.option('--concurrency', 'concurrency', type=int, default=None, help='Число одновременных запросов')
@click.option('--crawl-timeout', 'crawl_timeout', type=float, default=None, help='Таймаут всего обхода (секунд)')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами (по умолчанию встроенные)'
)
@click.pass_context
def generate(ctx, output_path, max_depth, max_queue_size, concurrency, crawl_timeout,
             json_output, html_output, template_dir):
    """Обойти сайт и записать sitemap.xml."""
    cfg = _load(ctx, {
        'output_path': output_path,
        'max_depth': max_depth,
        'max_queue_size': max_queue_size,
        'concurrency': concurrency,
        'crawl_timeout': crawl_timeout,
    })
    engine = Engine(cfg)
    click.echo(f'Starting site crawl: {cfg.base_url}')
    try:
        result = asyncio.run(run_crawl(engine))
    except PolicyError as e:
        print_error(f'Ошибка загрузки robots.txt: {e}', EXIT_POLICY)
    except Exception as e:
        print_error(f'Ошибка при обходе: {e}')

    document = engine.build(result)
    report = aggregate_results(result, document)
    click.echo(result.stats.summary())
    if result.cancelled:
        click.secho('Обход остановлен досрочно, sitemap построен по собранным данным', fg='yellow')

    if json_output:
        try:
            click.echo(f'JSON report: {render_json(report, json_output)}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            click.echo(f'HTML report: {render_html(report, template_dir, html_output)}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')

    click.echo('Writing sitemap.xml…')
    try:
        saved = engine.write(document)
    except WriteError as e:
        print_error(f'Обход завершён, но sitemap не записан: {e}', EXIT_WRITE)
    click.echo(f'Sitemap: {saved} ({len(document)} URLs)')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = _load(ctx, {})
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()

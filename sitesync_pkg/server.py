"""FastAPI application receiving content source webhooks and serving the article listing."""

import json
import logging
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from .exceptions import IndexCorrupt
from .index_store import load_index
from .listing import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, empty_listing, paginate

ARTICLE_MODEL = 'article'
RELEVANT_EVENTS = (
    'entry.create',
    'entry.update',
    'entry.publish',
    'entry.unpublish',
    'entry.delete',
)

QUEUED_MESSAGE = 'Webhook received. Regeneration queued.'

logger = logging.getLogger('Sitesync.Webhook')


def include_webhook_routes(app: FastAPI, debouncer, webhook_source: str = 'strapi') -> None:
    """Register the webhook route. Answers immediately; regeneration happens after the quiet period."""

    @app.post('/webhook/{source}', response_class=PlainTextResponse)
    async def receive_webhook(source: str, request: Request):
        if source != webhook_source:
            return PlainTextResponse(f'Unknown webhook source: {source}', status_code=404)

        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return PlainTextResponse('Invalid JSON body', status_code=400)
        if not isinstance(body, dict):
            return PlainTextResponse('Webhook body must be a JSON object', status_code=400)

        event = body.get('event')
        model = body.get('model')
        logger.debug(f"Query received: {event} on {model}")

        if model != ARTICLE_MODEL:
            return PlainTextResponse('Ignored: Not an article')
        if event not in RELEVANT_EVENTS:
            return PlainTextResponse(f'Ignored: Event {event} not relevant')

        logger.info(f"Relevant update detected: Article {event}")
        debouncer.arm()
        return PlainTextResponse(QUEUED_MESSAGE)


def include_listing_routes(app: FastAPI, index_path: str) -> None:
    """Register the paginated article listing read by the blog and news pages."""

    @app.get('/api/articles')
    def list_articles(
        page: int = Query(1, ge=1),
        page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, alias='pageSize'),
        category: Optional[str] = None,
    ):
        try:
            articles = load_index(index_path)
        except IndexCorrupt as e:
            logger.error(f"Listing unavailable: {e}")
            return JSONResponse(empty_listing('Articles are temporarily unavailable.', page, page_size))
        if not os.path.exists(index_path):
            return JSONResponse(empty_listing('No articles have been published yet.', page, page_size))
        return JSONResponse(paginate(articles, page, page_size, category))


def include_health_routes(app: FastAPI, debouncer, runner=None) -> None:

    @app.get('/health')
    def health():
        payload = {'status': 'ok', 'debouncer': debouncer.state}
        if runner is not None:
            payload['running'] = runner.running
            payload['pending'] = runner.pending
            payload['runs'] = runner.runs
            if runner.last_result is not None:
                payload['last_result'] = runner.last_result.as_dict()
        return payload


def create_app(debouncer, index_path: str, runner=None, webhook_source: str = 'strapi',
               serve_static: Optional[str] = None) -> FastAPI:
    """Create the FastAPI application with webhook, listing and health routes."""
    app = FastAPI(
        title="Sitesync",
        version="1.0.0",
        description="Content source webhooks and article listing.",
    )
    include_webhook_routes(app, debouncer, webhook_source)
    include_listing_routes(app, index_path)
    include_health_routes(app, debouncer, runner)
    if serve_static:
        # Mounted last so the API routes take precedence.
        app.mount('/', StaticFiles(directory=serve_static, html=True), name='site')
    return app


def run(sitesync, regenerate_on_start: bool = False) -> None:
    """Run the webhook server using Uvicorn."""
    settings = sitesync.settings
    debouncer, runner = sitesync.create_scheduler()
    app = create_app(
        debouncer,
        settings['index_path'],
        runner=runner,
        webhook_source=settings['webhook_source'],
        serve_static=settings.get('serve_static'),
    )
    logger.info(
        f"Webhook server listening on http://{settings['host']}:{settings['port']}"
        f"/webhook/{settings['webhook_source']}"
    )
    if regenerate_on_start:
        runner.request()
    try:
        uvicorn.run(app, host=settings['host'], port=settings['port'], log_level='warning')
    finally:
        debouncer.cancel()

# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
PhotoFrame web server.
Serves the slideshow page, photo records and proxied thumbnails.
"""

import logging
import os
from typing import Any

from flask import Flask, Response, jsonify, render_template, request, stream_with_context

from ..config import PhotoFrameConfig
from ..immich_client import ImmichClient, ImmichError
from ..models import PhotoCache, PhotoRecord

logger = logging.getLogger(__name__)

NO_CACHE = "no-cache, no-store, must-revalidate"
MAX_BATCH = 50
DEFAULT_BATCH = 10


def create_app(
    config: PhotoFrameConfig,
    cache: PhotoCache,
    client: ImmichClient,
    refresher: Any = None
) -> Flask:
    """
    Create the Flask application.

    Args:
        config: PhotoFrame configuration.
        cache: Photo cache the frame draws from.
        client: Immich client (location lookups and thumbnails).
        refresher: AlbumRefresher instance when in album mode (for status).

    Returns:
        Flask application.
    """
    app = Flask(
        __name__,
        template_folder=os.path.join(os.path.dirname(__file__), 'templates')
    )

    # Store references
    app.photoframe_config = config
    app.photo_cache = cache
    app.immich_client = client
    app.refresher = refresher

    def resolve_location(record: PhotoRecord) -> PhotoRecord:
        """Look up the location of a record that doesn't have one yet."""
        if record.location_resolved:
            return record
        return record.with_location(app.immich_client.fetch_location(record.id))

    def no_cache(response: Response) -> Response:
        response.headers['Cache-Control'] = NO_CACHE
        return response

    def loading() -> Response:
        response = Response("Loading photos...", status=503, mimetype='text/plain')
        return no_cache(response)

    # Routes

    @app.route('/')
    def index():
        """Slideshow page."""
        return render_template(
            'index.html',
            interval=app.photoframe_config.slideshow.interval_seconds
        )

    @app.route('/random')
    def random_photo():
        """Next photo record as JSON."""
        record = app.photo_cache.next()
        if record is None:
            return loading()

        record = resolve_location(record)
        return no_cache(jsonify(record.to_dict()))

    @app.route('/random/batch')
    def random_batch():
        """Several photo records as an ordered JSON list."""
        try:
            count = int(request.args.get('count', DEFAULT_BATCH))
        except ValueError:
            return jsonify({"error": "count must be an integer"}), 400
        count = max(1, min(count, MAX_BATCH))

        records = app.photo_cache.next_batch(count)
        if not records:
            return loading()

        return no_cache(jsonify([resolve_location(r).to_dict() for r in records]))

    @app.route('/photo')
    def photo():
        """Proxy a thumbnail from Immich without touching the bytes."""
        asset_id = request.args.get('id', '').strip()
        if not asset_id:
            return Response("Missing id", status=400, mimetype='text/plain')

        try:
            upstream = app.immich_client.fetch_thumbnail(asset_id)
        except ImmichError as e:
            logger.warning(f"Thumbnail fetch failed for {asset_id}: {e}")
            return Response("Failed to fetch photo", status=502, mimetype='text/plain')

        def generate():
            try:
                for chunk in upstream.iter_content(chunk_size=8192):
                    yield chunk
            finally:
                upstream.close()

        response = Response(
            stream_with_context(generate()),
            content_type=upstream.headers.get('Content-Type', 'application/octet-stream')
        )
        return no_cache(response)

    @app.route('/api/status')
    def api_status():
        """Get current status."""
        status = {
            "running": True,
            "config_path": app.photoframe_config.config_path,
            "mode": app.photoframe_config.cache.mode,
            "cache": app.photo_cache.get_status(),
        }
        if app.refresher is not None:
            status["refresher_running"] = app.refresher.running
        return jsonify(status)

    return app


def run_server(app: Flask, host: str, port: int) -> None:
    """Run the threaded development server."""
    # Disable Flask's default logging for cleaner output
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    logger.info(f"Starting web server on {host}:{port}")
    app.run(
        host=host,
        port=port,
        debug=False,
        threaded=True,
        use_reloader=False
    )


"""
HTTP delivery. One endpoint:

    GET /                                     full dashboard page
    GET /  (X-Requested-With: XMLHttpRequest) JSON snapshot for refreshes

Every request collects a fresh snapshot; nothing is cached between
requests. The page is always renderable: a fault while collecting still
returns 200 with placeholder text in each panel.
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify, render_template, request

from hostpulse import __version__
from hostpulse.aggregator import SnapshotAggregator
from hostpulse.config import MonitorConfig
from hostpulse.metrics import HostSnapshot

log = logging.getLogger(__name__)

ASYNC_HEADER = "X-Requested-With"
ASYNC_VALUE = "xmlhttprequest"


def is_refresh_request() -> bool:
    return request.headers.get(ASYNC_HEADER, "").lower() == ASYNC_VALUE


def create_app(
    config: Optional[MonitorConfig] = None,
    aggregator: Optional[SnapshotAggregator] = None,
) -> Flask:
    if aggregator is None:
        aggregator = SnapshotAggregator(config)
    config = aggregator.config

    app = Flask(__name__)
    app.config["HOSTPULSE"] = config

    def take_snapshot() -> HostSnapshot:
        try:
            return aggregator.collect_all()
        except Exception as e:
            log.exception("Snapshot collection failed")
            return HostSnapshot.placeholder(f"Collection failed: {e}")

    @app.route("/")
    def index():
        snapshot = take_snapshot()
        if is_refresh_request():
            response = jsonify(snapshot.to_dict())
        else:
            response = app.make_response(render_template(
                "dashboard.html",
                panels=list(snapshot.panels()),
                refresh_interval=config.refresh_interval,
                generated_at=snapshot.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                version=__version__,
            ))
        response.headers["Cache-Control"] = "no-store"
        # the same URL serves HTML and JSON
        response.headers["Vary"] = ASYNC_HEADER
        return response

    return app

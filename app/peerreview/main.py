from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv

from app.peerreview import create_app
from app.peerreview.config import check_production_settings, load_settings
from app.peerreview.context import build_context
from app.peerreview.errors import ListenError
from app.peerreview.loggers import init_loggers
from app.peerreview.server import Listener, ServerLifecycle, parse_args


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    settings = load_settings()
    logger = init_loggers(settings.env)

    try:
        check_production_settings(settings)
    except RuntimeError as e:
        logger.error("%s", e)
        return 1

    ctx = build_context(settings)
    app = create_app(ctx)
    listener = Listener(app, settings.listen_host, settings.listen_port, request_timeout=settings.request_timeout)
    lifecycle = ServerLifecycle(listener, ctx.db.close, graceful_timeout=args.graceful_timeout)

    try:
        lifecycle.run()
    except ListenError as e:
        logging.getLogger(__name__).error("%s", e)
        ctx.db.close()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

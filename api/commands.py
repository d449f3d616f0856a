"""
Token cleanup jobs, exposed through the Flask CLI:
- flask --app api cleanup-tokens   one pass, non-zero exit on failure
- flask --app api token-cron       one pass now, then every CRON_INTERVAL_MS

Both delete only rows past their expiry, so a pass can be re-run or
interrupted at any point.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Tuple

import click
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models.token_store import TokenStore

logger = logging.getLogger(__name__)


def run_cleanup(tokens: TokenStore) -> Tuple[int, int]:
    """Delete expired revocation markers and refresh tokens."""
    revoked = tokens.cleanup_expired_revocations()
    refresh = tokens.cleanup_expired_refresh_tokens()
    return revoked, refresh


def run_cron(tokens: TokenStore, interval_s: float, iterations: Optional[int] = None,
             sleep: Callable[[float], None] = time.sleep) -> int:
    """
    Run cleanup every interval_s seconds. A failed pass is logged and retried
    on the next tick. Returns the number of passes that failed.
    """
    failures = 0
    done = 0
    while iterations is None or done < iterations:
        try:
            logger.info("cron cleanup: starting expired token cleanup")
            run_cleanup(tokens)
            logger.info("cron cleanup: finished")
        except SQLAlchemyError:
            failures += 1
            logger.exception("cron cleanup failed")
            tokens.storage.rollback()
        finally:
            tokens.storage.close()
        done += 1
        if iterations is None or done < iterations:
            sleep(interval_s)
    return failures


def register_commands(app):
    @app.cli.command("cleanup-tokens")
    def cleanup_tokens():
        """Delete expired revoked-token markers and refresh tokens once."""
        services = current_app.extensions["services"]
        logger.info("Starting token cleanup")
        try:
            revoked, refresh = run_cleanup(services.tokens)
        except SQLAlchemyError as exc:
            logger.error("Token cleanup failed: %s", exc)
            raise click.ClickException("token cleanup failed")
        finally:
            services.storage.close()
        click.echo(f"removed {revoked} revoked-token markers and {refresh} refresh tokens")

    @app.cli.command("token-cron")
    @click.option("--interval-ms", type=int, default=None,
                  help="Milliseconds between passes (default: CRON_INTERVAL_MS).")
    @click.option("--iterations", type=int, default=None,
                  help="Stop after this many passes (default: run until interrupted).")
    def token_cron(interval_ms, iterations):
        """Run token cleanup now and then on a fixed interval."""
        services = current_app.extensions["services"]
        interval_ms = interval_ms or current_app.config["CRON_INTERVAL_MS"]
        try:
            failures = run_cron(services.tokens, interval_ms / 1000.0, iterations=iterations)
        except KeyboardInterrupt:
            logger.info("token cron stopped")
            return
        if failures:
            click.echo(f"{failures} cleanup pass(es) failed; see log")

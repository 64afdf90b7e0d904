"""csrfguard entry point.

Runs the demo API server. Configuration comes from ``CSRF_*`` environment
variables; the flags below override them.
"""

import argparse
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from csrfguard.exceptions import CSRFConfigurationError

logger = logging.getLogger(__name__)


def _package_version() -> str:
    try:
        return get_version("csrfguard")
    except PackageNotFoundError:
        return "unknown"


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="csrfguard - signed double-submit CSRF protection (demo server)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  CSRF_SECRET=s3cret csrfguard
  CSRF_SECRET=s3cret csrfguard --origin https://app.example --port 9000
  CSRF_SECRET=s3cret csrfguard --timeout 600 --dev
""",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument("--origin", help="Trusted origin, e.g. https://app.example")
    parser.add_argument("--timeout", type=int, help="Token timeout in seconds")
    parser.add_argument("--nag-https", action="store_true", help="Warn about plain-http requests")
    parser.add_argument("--dev", action="store_true", help="Auto-reload on code changes")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--version", "-V", action="version", version=_package_version())
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # environment so the --dev reloader process sees the same settings
    if args.origin:
        os.environ["CSRF_ORIGIN"] = args.origin
    if args.timeout is not None:
        os.environ["CSRF_TIMEOUT"] = str(args.timeout)
    if args.nag_https:
        os.environ["CSRF_NAG_HTTPS"] = "true"

    from csrfguard.serve import run_server

    try:
        run_server(host=args.host, port=args.port, dev=args.dev)
    except CSRFConfigurationError as e:
        logger.error("Invalid CSRF configuration: %s", e)
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()

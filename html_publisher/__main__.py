from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from html_publisher.app_factory import create_app, create_build_context, create_publish_service
from html_publisher.config.ini_config import IniConfig
from html_publisher.domain.errors import ConfigurationError
from html_publisher.log_setup import setup_logging
from html_publisher.repositories.build_repository import BuildRepository

log = logging.getLogger("html_publisher")


def _parse_vars(pairs: List[str]) -> Dict[str, str]:
    env: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {pair!r}")
        env[key.strip()] = value
    return env


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="html_publisher", description="Archive and publish HTML reports.")
    parser.add_argument("--ini", type=Path, default=None, help="INI file (default: $HTMLPUBLISHER_INI or htmlpublisher.ini)")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the report browser (default).")

    publish = sub.add_parser("publish", help="Run one archive pass for a build.")
    publish.add_argument("--build-number", type=int, default=None, help="Build number (default: next free number)")
    publish.add_argument("--var", action="append", default=[], metavar="KEY=VALUE",
                         help="Extra build variable; may be repeated")
    return parser


def run_publish(ini: IniConfig, build_number: Optional[int], extra_vars: Dict[str, str]) -> int:
    settings = ini.load_settings()
    registry = ini.load_targets()
    build_repo = BuildRepository(job_root=settings.job_root)

    number = build_number if build_number is not None else build_repo.next_build_number()
    env = dict(os.environ)
    env.update(extra_vars)
    context = create_build_context(settings, number, env)

    result = create_publish_service(settings, registry).run(context)
    build_repo.save(context)

    for outcome in result.outcomes:
        log.info("[htmlpublisher] %s: %s %s", outcome.target.name, outcome.status.value, outcome.message)
    log.info("[htmlpublisher] Build #%d finished: %s", number, context.result.value)
    return 0 if result.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        ini = IniConfig(args.ini) if args.ini else IniConfig.from_env_or_default()
        setup_logging(ini.load_settings().log_level)

        if args.command == "publish":
            return run_publish(ini, args.build_number, _parse_vars(args.var))

        app = create_app(ini)
        app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"])
        return 0
    except (ConfigurationError, FileNotFoundError, argparse.ArgumentTypeError) as e:
        setup_logging()
        log.error("[htmlpublisher] %s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())

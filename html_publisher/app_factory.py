from __future__ import annotations

from typing import Mapping, Optional

from flask import Flask

from html_publisher.config.ini_config import AppSettings, IniConfig
from html_publisher.domain.build_context import BuildContext
from html_publisher.repositories.archive_repository import ArchiveRepository
from html_publisher.repositories.build_repository import BuildRepository
from html_publisher.services.publish_service import PublishService
from html_publisher.services.report_indexer import ReportIndexer
from html_publisher.services.target_registry import TargetRegistry
from html_publisher.services.wrapper_renderer import WrapperRenderer
from html_publisher.web.routes import create_blueprint


def create_publish_service(settings: AppSettings, registry: TargetRegistry) -> PublishService:
    renderer = WrapperRenderer(
        header_path=settings.header_template,
        footer_path=settings.footer_template,
    )
    return PublishService(
        registry=registry,
        indexer=ReportIndexer(max_workers=settings.scan_workers),
        renderer=renderer,
        archiver=ArchiveRepository(),
    )


def create_build_context(
    settings: AppSettings,
    build_number: int,
    env: Optional[Mapping[str, str]] = None,
) -> BuildContext:
    env = dict(env or {})
    env.setdefault("BUILD_NUMBER", str(build_number))
    env.setdefault("JOB_NAME", settings.job_name)
    env.setdefault("WORKSPACE", str(settings.workspace))
    return BuildContext(
        job_name=settings.job_name,
        job_root=settings.job_root,
        build_number=build_number,
        workspace=settings.workspace,
        env=env,
        root_url=settings.root_url,
    )


def create_app(ini: Optional[IniConfig] = None) -> Flask:
    ini = ini or IniConfig.from_env_or_default()
    settings = ini.load_settings()
    registry = ini.load_targets()

    build_repo = BuildRepository(job_root=settings.job_root)

    app = Flask(__name__)
    app.register_blueprint(create_blueprint(settings, registry, build_repo))

    app.config["HOST"] = settings.flask_host
    app.config["PORT"] = settings.flask_port
    app.config["DEBUG"] = settings.flask_debug

    return app

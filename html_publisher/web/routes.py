## routes.py
from __future__ import annotations

import io
import zipfile
from pathlib import Path

from flask import Blueprint, abort, current_app, render_template, send_file

from html_publisher.config.ini_config import AppSettings
from html_publisher.domain.models import WRAPPER_NAME, ActionKind, ReportTarget
from html_publisher.repositories.build_repository import BuildRepository
from html_publisher.services.path_matcher import PathMatcher
from html_publisher.services.target_registry import TargetRegistry

ZIP_PREFIX = "*zip*/"


def _zip_directory(root: Path, slug: str) -> io.BytesIO:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for rel in sorted(PathMatcher().resolve(root, "**/*")):
            zf.write(root / rel, arcname=f"{slug}/{rel}")
    buf.seek(0)
    return buf


def _serve(root: Path, target: ReportTarget, filename: str):
    if not root.is_dir():
        abort(404)

    if filename == f"{ZIP_PREFIX}{target.sanitized_name}.zip":
        return send_file(
            _zip_directory(root, target.sanitized_name),
            mimetype="application/zip",
            as_attachment=True,
            download_name=f"{target.sanitized_name}.zip",
        )

    base = root.resolve()
    full = (base / filename).resolve()
    if full != base and base not in full.parents:
        abort(403)
    if full.is_dir():
        full = full / WRAPPER_NAME
    if not full.exists() or not full.is_file():
        abort(404)

    as_attach = full.suffix.lower() not in {".html", ".htm", ".css", ".js", ".png", ".gif", ".jpg", ".svg"}
    return send_file(full, as_attachment=as_attach)


def create_blueprint(settings: AppSettings, registry: TargetRegistry, build_repo: BuildRepository) -> Blueprint:
    bp = Blueprint("web", __name__)

    def _target_or_404(slug: str) -> ReportTarget:
        target = registry.by_sanitized_name(slug)
        if target is None:
            abort(404)
        return target

    @bp.get("/")
    def index():
        project_links = []
        for action in registry.project_actions():
            target = registry.get(action.report_name)
            # a project link is only shown once something has been archived
            if build_repo.project_report_dir(target).exists():
                project_links.append(action)

        build_links = []
        for record in build_repo.build_links():
            for action in record.actions:
                if action.kind is ActionKind.BUILD_LEVEL_LINK and registry.get(action.report_name):
                    build_links.append(action)

        current_app.logger.info("Report links: %d project, %d build", len(project_links), len(build_links))
        return render_template(
            "index.html",
            job_name=settings.job_name,
            project_links=project_links,
            build_links=build_links,
        )

    @bp.get("/report/<slug>/", defaults={"filename": ""})
    @bp.get("/report/<slug>/<path:filename>")
    def project_report(slug: str, filename: str):
        target = _target_or_404(slug)
        return _serve(build_repo.project_report_dir(target), target, filename)

    @bp.get("/build/<int:number>/report/<slug>/", defaults={"filename": ""})
    @bp.get("/build/<int:number>/report/<slug>/<path:filename>")
    def build_report(number: int, slug: str, filename: str):
        target = _target_or_404(slug)
        return _serve(build_repo.build_archive_dir(number, target), target, filename)

    return bp

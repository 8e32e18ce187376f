from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from html_publisher.domain.build_context import BuildContext, BuildResult
from html_publisher.domain.errors import ScanError
from html_publisher.domain.models import (
    WRAPPER_NAME,
    ActionKind,
    ArchiveOutcome,
    Classification,
    ReportTarget,
    TargetStatus,
    WrapperDocument,
)
from html_publisher.repositories.archive_repository import ArchiveRepository
from html_publisher.services.path_matcher import PathMatcher
from html_publisher.services.publish_service import PublishService, record_published_action
from html_publisher.services.report_indexer import ReportIndexer
from html_publisher.services.target_registry import TargetRegistry
from html_publisher.services.wrapper_renderer import WrapperRenderer

HEADER = ("<html>",)
FOOTER = ("</html>",)


# -----------------------------
# Test doubles
# -----------------------------
class RecordingCallback:
    def __init__(self):
        self.calls: List[Tuple[str, int]] = []

    def __call__(self, target: ReportTarget, context: BuildContext) -> None:
        self.calls.append((target.name, context.build_number))


class FailingArchiveRepository(ArchiveRepository):
    def archive(self, source_dir, target_dir, keep_all, allow_missing, wrapper) -> ArchiveOutcome:
        return ArchiveOutcome.COPY_FAILED


class UnreadableDirMatcher(PathMatcher):
    def resolve(self, base_dir, include_pattern):
        if Path(base_dir).name == "locked":
            raise ScanError(f"Failed to scan {base_dir}: Permission denied")
        return super().resolve(base_dir, include_pattern)


# -----------------------------
# Helpers
# -----------------------------
def _write(base: Path, rel: str, content: str = "ok") -> None:
    p = base / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")


def make_context(tmp_path: Path, env: Optional[dict] = None, root_url: Optional[str] = None) -> BuildContext:
    workspace = tmp_path / "workspace"
    workspace.mkdir(exist_ok=True)
    return BuildContext(
        job_name="nightly",
        job_root=tmp_path / "jobs" / "nightly",
        build_number=7,
        workspace=workspace,
        env=env or {},
        root_url=root_url,
    )


def make_service(*targets: ReportTarget, **kw) -> PublishService:
    kw.setdefault("header", HEADER)
    kw.setdefault("footer", FOOTER)
    return PublishService(registry=TargetRegistry(targets), **kw)


def _wrapper(context: BuildContext, target: ReportTarget) -> str:
    return (target.archive_dir(context) / WRAPPER_NAME).read_text(encoding="utf-8")


# -----------------------------
# Scenarios
# -----------------------------
def test_single_report_published(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "out/report.html")
    target = ReportTarget(name="My Report", source_dir="out", file_pattern="report.html")
    callback = RecordingCallback()

    result = make_service(target, on_published=callback).run(context)

    assert result.success
    outcome = result.outcomes[0]
    assert outcome.status is TargetStatus.PUBLISHED
    assert [(e.relative_path, e.classification) for e in outcome.index] == [("report.html", Classification.PASS)]
    assert outcome.archive_dir == context.job_root / "htmlreports" / "My_Report"
    html = _wrapper(context, target)
    assert html.count("<li ") == 1
    assert ">report</li>" in html
    assert '"*zip*/My_Report.zip"' in html
    assert callback.calls == [("My Report", 7)]
    assert context.result is BuildResult.SUCCESS


def test_missing_source_fails_the_build(tmp_path: Path):
    context = make_context(tmp_path)
    target = ReportTarget(name="R", source_dir="nope")
    callback = RecordingCallback()

    result = make_service(target, on_published=callback).run(context)

    assert not result.success
    assert result.outcomes[0].status is TargetStatus.SOURCE_MISSING
    assert context.result is BuildResult.FAILURE
    assert not (target.archive_dir(context) / WRAPPER_NAME).exists()
    assert callback.calls == []


def test_missing_source_allowed(tmp_path: Path):
    context = make_context(tmp_path)
    target = ReportTarget(name="R", source_dir="nope", allow_missing=True)
    callback = RecordingCallback()

    result = make_service(target, on_published=callback).run(context)

    assert result.success
    assert result.outcomes[0].status is TargetStatus.SKIPPED_MISSING
    assert context.result is BuildResult.SUCCESS
    assert not (target.archive_dir(context) / WRAPPER_NAME).exists()
    assert callback.calls == []


def test_failure_regex_orders_tabs(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "out/a.html", "all passed")
    _write(context.workspace, "out/b.html", "<td>FAILED</td>")
    target = ReportTarget(name="R", source_dir="out", file_pattern="*.html", failure_pattern="FAILED")

    result = make_service(target).run(context)

    index = result.outcomes[0].index
    assert [(e.relative_path, e.classification) for e in index] == [
        ("a.html", Classification.PASS),
        ("b.html", Classification.FAIL),
    ]
    html = _wrapper(context, target)
    assert 'id="tab1" class="unselected" test_result="success"' in html
    assert 'value="a.html">a</li>' in html
    assert 'id="tab2" class="unselected" test_result="failure"' in html
    assert 'value="b.html">b</li>' in html


def test_project_level_second_pass_drops_removed_files(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "out/a.html")
    _write(context.workspace, "out/b.html")
    target = ReportTarget(name="R", source_dir="out", file_pattern="*.html")
    service = make_service(target)

    service.run(context)
    (context.workspace / "out" / "b.html").unlink()
    service.run(context)

    archived = sorted(p.name for p in target.archive_dir(context).iterdir())
    assert archived == ["a.html", WRAPPER_NAME]


def test_identical_passes_write_identical_wrapper(tmp_path: Path):
    context = make_context(tmp_path, root_url="https://ci.example.org")
    for name in ("c.html", "a.html", "b.html"):
        _write(context.workspace, f"out/{name}", "FAILED" if name == "a.html" else "ok")
    target = ReportTarget(name="R", source_dir="out", file_pattern="*.html", failure_pattern="FAILED")
    service = make_service(target)

    service.run(context)
    first = _wrapper(context, target)
    service.run(context)
    assert _wrapper(context, target) == first
    assert '"https://ci.example.org/job/nightly/"' in first


# -----------------------------
# Orchestration rules
# -----------------------------
def test_failing_target_does_not_stop_the_others(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "good/index.html")
    broken = ReportTarget(name="Broken", source_dir="missing")
    good = ReportTarget(name="Good", source_dir="good")

    result = make_service(broken, good).run(context)

    assert [o.status for o in result.outcomes] == [TargetStatus.SOURCE_MISSING, TargetStatus.PUBLISHED]
    assert not result.success
    assert [o.target.name for o in result.failed_targets] == ["Broken"]
    assert (good.archive_dir(context) / WRAPPER_NAME).exists()
    assert context.result is BuildResult.FAILURE


def test_bad_regex_is_a_configuration_error_for_that_target_only(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "out/index.html")
    bad = ReportTarget(name="Bad", source_dir="out", failure_pattern="([oops")
    good = ReportTarget(name="Good", source_dir="out")

    result = make_service(bad, good).run(context)

    assert result.outcomes[0].status is TargetStatus.CONFIGURATION_ERROR
    assert "Invalid failure regex" in result.outcomes[0].message
    assert result.outcomes[1].status is TargetStatus.PUBLISHED
    assert context.result is BuildResult.FAILURE


def test_invalid_glob_is_a_configuration_error(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "out/index.html")
    target = ReportTarget(name="R", source_dir="out", file_pattern="../secrets/*")

    result = make_service(target).run(context)

    assert result.outcomes[0].status is TargetStatus.CONFIGURATION_ERROR


def test_copy_failure_marks_build_failed(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "out/index.html")
    target = ReportTarget(name="R", source_dir="out")

    result = make_service(target, archiver=FailingArchiveRepository()).run(context)

    assert result.outcomes[0].status is TargetStatus.COPY_FAILED
    assert context.result is BuildResult.FAILURE


def test_variables_are_resolved_in_dir_and_pattern(tmp_path: Path):
    context = make_context(tmp_path, env={"BRANCH": "main", "EXT": "html"})
    _write(context.workspace, "out/main/report.html")
    target = ReportTarget(name="R", source_dir="out/${BRANCH}", file_pattern="*.$EXT")

    result = make_service(target).run(context)

    assert result.outcomes[0].status is TargetStatus.PUBLISHED
    assert [e.relative_path for e in result.outcomes[0].index] == ["report.html"]


def test_keep_all_archives_under_the_build(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "out/index.html")
    target = ReportTarget(name="R", source_dir="out", keep_all=True)

    result = make_service(target).run(context)

    assert result.outcomes[0].archive_dir == context.job_root / "builds" / "7" / "htmlreports" / "R"
    assert (result.outcomes[0].archive_dir / "index.html").exists()


@pytest.mark.parametrize(
    "keep_all, kind",
    [(True, ActionKind.BUILD_LEVEL_LINK), (False, ActionKind.HIDDEN_MARKER)],
)
def test_default_callback_records_action(tmp_path: Path, keep_all: bool, kind: ActionKind):
    context = make_context(tmp_path)
    _write(context.workspace, "out/index.html")
    target = ReportTarget(name="R", source_dir="out", keep_all=keep_all)

    make_service(target, on_published=record_published_action).run(context)

    assert [(a.kind, a.report_name, a.build_number) for a in context.actions] == [(kind, "R", 7)]


def test_callback_error_does_not_escape(tmp_path: Path):
    def explode(target, context):
        raise RuntimeError("boom")

    context = make_context(tmp_path)
    _write(context.workspace, "out/index.html")
    target = ReportTarget(name="R", source_dir="out")

    result = make_service(target, on_published=explode).run(context)

    assert result.outcomes[0].status is TargetStatus.PUBLISHED


def test_default_templates_are_used_without_overrides(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "out/index.html")
    target = ReportTarget(name="R", source_dir="out")

    PublishService(registry=TargetRegistry([target])).run(context)

    html = _wrapper(context, target)
    assert 'id="hudson_link"' in html
    assert "history.go(-1)" in html


def test_scan_failure_is_reported_for_that_target_only(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "locked/index.html")
    _write(context.workspace, "out/index.html")
    locked = ReportTarget(name="Locked", source_dir="locked")
    good = ReportTarget(name="Good", source_dir="out")

    result = make_service(locked, good, indexer=ReportIndexer(matcher=UnreadableDirMatcher())).run(context)

    assert [o.status for o in result.outcomes] == [TargetStatus.SCAN_FAILED, TargetStatus.PUBLISHED]
    assert "Permission denied" in result.outcomes[0].message
    assert not (locked.archive_dir(context) / WRAPPER_NAME).exists()
    assert (good.archive_dir(context) / WRAPPER_NAME).exists()
    assert context.result is BuildResult.FAILURE


def test_unreadable_header_fails_every_target_without_raising(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "a/index.html")
    _write(context.workspace, "b/index.html")
    header = tmp_path / "header.html"
    header.write_bytes(b"\xff\xfe\xfa bad")
    first = ReportTarget(name="A", source_dir="a")
    second = ReportTarget(name="B", source_dir="b")
    service = PublishService(registry=TargetRegistry([first, second]), renderer=WrapperRenderer(header_path=header))

    result = service.run(context)

    assert [o.status for o in result.outcomes] == [TargetStatus.CONFIGURATION_ERROR] * 2
    assert not result.success
    assert not (first.archive_dir(context) / WRAPPER_NAME).exists()
    assert context.result is BuildResult.FAILURE


def test_missing_footer_fails_the_pass(tmp_path: Path):
    context = make_context(tmp_path)
    _write(context.workspace, "out/index.html")
    target = ReportTarget(name="R", source_dir="out")
    service = PublishService(
        registry=TargetRegistry([target]),
        renderer=WrapperRenderer(footer_path=tmp_path / "gone.html"),
    )

    result = service.run(context)

    assert result.outcomes[0].status is TargetStatus.CONFIGURATION_ERROR
    assert context.result is BuildResult.FAILURE

from __future__ import annotations

from pathlib import Path

from html_publisher.domain.models import WRAPPER_NAME, ArchiveOutcome, WrapperDocument
from html_publisher.repositories.archive_repository import ArchiveRepository

WRAPPER = WrapperDocument(header_lines=("<html>",), body_lines=("<li>r</li>",), footer_lines=("</html>",))


def _write(base: Path, rel: str, content: str = "x") -> Path:
    p = base / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


def _tree(base: Path) -> dict:
    return {
        p.relative_to(base).as_posix(): p.read_bytes()
        for p in sorted(base.rglob("*"))
        if p.is_file()
    }


def test_copies_tree_and_writes_wrapper(tmp_path: Path):
    src = tmp_path / "src"
    _write(src, "index.html", "<p>hi</p>")
    _write(src, "css/site.css", "body{}")
    target = tmp_path / "archive" / "Report"

    outcome = ArchiveRepository().archive(src, target, keep_all=False, allow_missing=False, wrapper=WRAPPER)

    assert outcome is ArchiveOutcome.SUCCESS
    assert (target / "index.html").read_text(encoding="utf-8") == "<p>hi</p>"
    assert (target / "css" / "site.css").exists()
    assert (target / WRAPPER_NAME).read_text(encoding="utf-8") == "<html>\n<li>r</li>\n</html>\n"


def test_missing_source_not_allowed(tmp_path: Path):
    target = tmp_path / "archive"
    outcome = ArchiveRepository().archive(tmp_path / "nope", target, False, False, WRAPPER)
    assert outcome is ArchiveOutcome.SOURCE_MISSING
    assert not (target / WRAPPER_NAME).exists()


def test_missing_source_allowed_is_a_silent_no_op(tmp_path: Path):
    target = tmp_path / "archive"
    outcome = ArchiveRepository().archive(tmp_path / "nope", target, False, True, WRAPPER)
    assert outcome is ArchiveOutcome.SUCCESS
    assert not (target / WRAPPER_NAME).exists()


def test_empty_source_fails_unless_allowed(tmp_path: Path):
    src = tmp_path / "src"
    src.mkdir()
    repo = ArchiveRepository()
    assert repo.archive(src, tmp_path / "a", False, False, WRAPPER) is ArchiveOutcome.COPY_FAILED
    assert repo.archive(src, tmp_path / "b", False, True, WRAPPER) is ArchiveOutcome.SUCCESS
    # the source existed, so the wrapper is still written
    assert (tmp_path / "b" / WRAPPER_NAME).exists()


def test_project_level_replaces_previous_copy(tmp_path: Path):
    src = tmp_path / "src"
    _write(src, "a.html")
    stale = _write(src, "b.html")
    target = tmp_path / "archive"
    repo = ArchiveRepository()

    assert repo.archive(src, target, False, False, WRAPPER) is ArchiveOutcome.SUCCESS
    stale.unlink()
    assert repo.archive(src, target, False, False, WRAPPER) is ArchiveOutcome.SUCCESS

    assert sorted(_tree(target)) == ["a.html", WRAPPER_NAME]


def test_project_level_archive_is_idempotent(tmp_path: Path):
    src = tmp_path / "src"
    _write(src, "a.html", "one")
    _write(src, "sub/b.html", "two")
    target = tmp_path / "archive"
    repo = ArchiveRepository()

    repo.archive(src, target, False, False, WRAPPER)
    first = _tree(target)
    repo.archive(src, target, False, False, WRAPPER)
    assert _tree(target) == first


def test_keep_all_does_not_delete_existing_files(tmp_path: Path):
    src = tmp_path / "src"
    _write(src, "a.html")
    target = tmp_path / "archive"
    _write(target, "previous.html")

    assert ArchiveRepository().archive(src, target, True, False, WRAPPER) is ArchiveOutcome.SUCCESS
    assert (target / "previous.html").exists()
    assert (target / "a.html").exists()


def test_default_excludes_are_not_copied(tmp_path: Path):
    src = tmp_path / "src"
    _write(src, "index.html")
    _write(src, ".svn/entries")
    target = tmp_path / "archive"

    ArchiveRepository().archive(src, target, False, False, WRAPPER)
    assert not (target / ".svn").exists()


def test_copy_error_is_reported_as_copy_failed(tmp_path: Path):
    class BrokenArchive(ArchiveRepository):
        def copy_tree(self, source_dir: Path, target_dir: Path) -> int:
            raise PermissionError(13, "Permission denied", str(target_dir))

    src = tmp_path / "src"
    _write(src, "index.html")
    outcome = BrokenArchive().archive(src, tmp_path / "archive", False, False, WRAPPER)
    assert outcome is ArchiveOutcome.COPY_FAILED

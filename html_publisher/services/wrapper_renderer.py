from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from html_publisher.domain.models import ReportIndex, TabEntry, WrapperDocument

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates" / "wrapper"
TABS_TEMPLATE = "tabs.html"


def read_lines(path: Path) -> Tuple[str, ...]:
    """Header/footer blocks are passed through untouched, line by line."""
    return tuple(Path(path).read_text(encoding="utf-8-sig").splitlines())


def tab_label(relative_path: str) -> str:
    stem, ext = posixpath.splitext(relative_path)
    return stem if ext else relative_path


def build_tabs(index: ReportIndex) -> Tuple[TabEntry, ...]:
    return tuple(
        TabEntry(
            tab_id=f"tab{position}",
            label=tab_label(entry.relative_path),
            target=entry.relative_path,
            result=entry.classification.value,
        )
        for position, entry in enumerate(index, start=1)
    )


@dataclass
class WrapperRenderer:
    """
    Builds the tabbed wrapper page: header, one tab per report, the
    back/zip link directives, footer.
    """
    template_dir: Path = DEFAULT_TEMPLATE_DIR
    header_path: Optional[Path] = None
    footer_path: Optional[Path] = None
    _env: Environment = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def load_header(self) -> Tuple[str, ...]:
        return read_lines(self.header_path or self.template_dir / "header.html")

    def load_footer(self) -> Tuple[str, ...]:
        return read_lines(self.footer_path or self.template_dir / "footer.html")

    def render(
        self,
        header: Sequence[str],
        footer: Sequence[str],
        index: ReportIndex,
        link_back_label: str,
        link_back_url: Optional[str],
        zip_link_url: str,
    ) -> WrapperDocument:
        tabs = build_tabs(index)
        body = self._env.get_template(TABS_TEMPLATE).render(
            tabs=tabs,
            link_back_label=link_back_label,
            link_back_url=link_back_url,
            zip_link_url=zip_link_url,
        )
        return WrapperDocument(
            header_lines=tuple(header),
            body_lines=tuple(line for line in body.splitlines() if line.strip()),
            footer_lines=tuple(footer),
            tabs=tabs,
        )

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from html_publisher.domain.build_context import BuildContext, BuildResult
from html_publisher.domain.errors import ConfigurationError, ScanError
from html_publisher.domain.models import (
    ActionKind,
    ArchiveOutcome,
    PublishedAction,
    PublishResult,
    ReportTarget,
    TargetOutcome,
    TargetStatus,
)
from html_publisher.repositories.archive_repository import ArchiveRepository
from html_publisher.services.failure_scanner import compile_failure_pattern
from html_publisher.services.report_indexer import ReportIndexer
from html_publisher.services.target_registry import TargetRegistry
from html_publisher.services.variables import EnvVariableResolver, VariableResolver
from html_publisher.services.wrapper_renderer import WrapperRenderer

log = logging.getLogger(__name__)

PublishedCallback = Callable[[ReportTarget, BuildContext], None]


def record_published_action(target: ReportTarget, context: BuildContext) -> None:
    """Default on_published: attach a build link, or a hidden marker for project level reports."""
    if target.keep_all:
        context.add_action(PublishedAction(ActionKind.BUILD_LEVEL_LINK, target.name, context.build_number))
    else:
        context.add_action(PublishedAction(ActionKind.HIDDEN_MARKER, target.name, context.build_number))


@dataclass
class PublishService:
    """
    Service layer: runs one archive pass over every configured report target.
    A failing target marks the build failed but never stops the others.
    """
    registry: TargetRegistry
    indexer: ReportIndexer = field(default_factory=ReportIndexer)
    renderer: WrapperRenderer = field(default_factory=WrapperRenderer)
    archiver: ArchiveRepository = field(default_factory=ArchiveRepository)
    on_published: PublishedCallback = record_published_action
    resolver_factory: Callable[[BuildContext], VariableResolver] = lambda ctx: EnvVariableResolver(env=dict(ctx.env))
    header: Optional[Sequence[str]] = None
    footer: Optional[Sequence[str]] = None

    def run(self, context: BuildContext) -> PublishResult:
        log.info("[htmlpublisher] Archiving HTML reports...")

        try:
            header = tuple(self.header) if self.header is not None else self.renderer.load_header()
            footer = tuple(self.footer) if self.footer is not None else self.renderer.load_footer()
        except (OSError, UnicodeDecodeError) as e:
            log.error("[htmlpublisher] Could not read the wrapper header or footer: %s", e)
            context.mark_failure()
            return PublishResult(outcomes=tuple(
                TargetOutcome(t, TargetStatus.CONFIGURATION_ERROR, archive_dir=t.archive_dir(context), message=str(e))
                for t in self.registry
            ))

        resolver = self.resolver_factory(context)

        outcomes: List[TargetOutcome] = []
        for target in self.registry:
            outcome = self.publish_target(target, context, resolver, header, footer)
            if outcome.status.failed:
                context.mark_failure()
            outcomes.append(outcome)

        result = PublishResult(outcomes=tuple(outcomes))
        if not result.success:
            names = ", ".join(o.target.name for o in result.failed_targets)
            log.error("[htmlpublisher] HTML Publisher failure: %s", names)
        return result

    def publish_target(
        self,
        target: ReportTarget,
        context: BuildContext,
        resolver: VariableResolver,
        header: Sequence[str],
        footer: Sequence[str],
    ) -> TargetOutcome:
        source_dir = context.workspace / resolver.resolve(target.source_dir)
        file_pattern = resolver.resolve(target.file_pattern)
        archive_dir = target.archive_dir(context)
        level = "BUILD" if target.keep_all else "PROJECT"
        log.info("[htmlpublisher] Archiving at %s level %s to %s", level, source_dir, archive_dir)

        try:
            failure_regex = compile_failure_pattern(target.failure_pattern)
            index = self.indexer.index(source_dir, file_pattern, failure_regex) if source_dir.is_dir() else ()
        except ConfigurationError as e:
            log.error("[htmlpublisher] Report %r is misconfigured: %s", target.name, e)
            return TargetOutcome(target, TargetStatus.CONFIGURATION_ERROR, archive_dir=archive_dir, message=str(e))
        except ScanError as e:
            log.error("[htmlpublisher] Report %r could not be scanned in %s: %s", target.name, source_dir, e)
            return TargetOutcome(target, TargetStatus.SCAN_FAILED, archive_dir=archive_dir, message=str(e))

        wrapper = self.renderer.render(
            header,
            footer,
            index,
            link_back_label=f"Back to {context.job_name}",
            link_back_url=context.job_url(),
            zip_link_url=target.zip_link,
        )

        source_existed = source_dir.is_dir()
        outcome = self.archiver.archive(source_dir, archive_dir, target.keep_all, target.allow_missing, wrapper)

        if outcome is ArchiveOutcome.SOURCE_MISSING:
            return TargetOutcome(
                target, TargetStatus.SOURCE_MISSING, index, archive_dir,
                message=f"Specified HTML directory '{source_dir}' does not exist.",
            )
        if outcome is ArchiveOutcome.COPY_FAILED:
            if context.result.is_better_or_equal(BuildResult.UNSTABLE):
                log.error("[htmlpublisher] This is especially strange since your build otherwise succeeded.")
            return TargetOutcome(
                target, TargetStatus.COPY_FAILED, index, archive_dir,
                message=f"Directory '{source_dir}' could not be copied to '{archive_dir}'.",
            )

        if not source_existed:
            log.info("[htmlpublisher] Report %r has no directory %s; skipped", target.name, source_dir)
            return TargetOutcome(target, TargetStatus.SKIPPED_MISSING, index, archive_dir)

        try:
            self.on_published(target, context)
        except Exception:
            log.exception("[htmlpublisher] Report %r was archived but could not be linked", target.name)
        return TargetOutcome(target, TargetStatus.PUBLISHED, index, archive_dir)

"""Incremental synchronization of the catalog against live code.

A run expands selectors into candidate packages, refreshes the candidates
whose source changed since they were last recorded, and finally deletes
stored packages that fall within the selectors' scope but no longer exist.
Any load or fetch failure aborts the run; rows written before the failure
stay written, and re-running (with ``force`` if needed) is the recovery path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from apicat import metadata
from apicat.errors import FetchFailure
from apicat.providers.base import MetadataProvider, ModuleLoader
from apicat.selectors import SEPARATOR, Selector, SelectorKind, is_excluded, parse_selectors
from apicat.store import CatalogStore

logger = logging.getLogger(__name__)

# (position, target, message); position advances fractionally through a
# package's functions.
ProgressCallback = Callable[[float, int, str], None]


@dataclass
class SyncReport:
    candidates: list[str] = field(default_factory=list)
    refreshed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    dry_run: bool = False
    actions: list[dict[str, Any]] = field(default_factory=list)

    def plan(self, action: str, target: str, details: dict[str, Any] | None = None) -> None:
        """Record an action a dry run would have performed."""

        self.actions.append({"action": action, "target": target, "details": details or {}})

    def as_payload(self) -> dict[str, Any]:
        return {
            "candidates": self.candidates,
            "refreshed": self.refreshed,
            "skipped": self.skipped,
            "excluded": self.excluded,
            "deleted": self.deleted,
            "dry_run": self.dry_run,
            "actions": self.actions,
        }


def needs_refresh(
    stored_mtime: int | None,
    disk_mtime: int | None,
    *,
    exists: bool,
    force: bool = False,
) -> bool:
    """Staleness policy: refresh unless the stored row is provably current."""

    return force or not exists or not stored_mtime or disk_mtime is None or stored_mtime < disk_mtime


class Synchronizer:
    def __init__(
        self,
        store: CatalogStore,
        provider: MetadataProvider,
        loader: ModuleLoader,
        *,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.store = store
        self.provider = provider
        self.loader = loader
        self.progress = progress

    def _report_progress(self, pos: float, target: int, message: str) -> None:
        if self.progress is not None:
            self.progress(pos, target, message)

    def expand(self, selectors: Sequence[Selector], exclude: Iterable[str] = ()) -> list[str]:
        """Deduplicated, order-preserving candidate list; loads module selectors."""

        exclusions = list(exclude)
        candidates: list[str] = []
        seen: set[str] = set()

        def _accept(name: str) -> bool:
            return name not in seen and not is_excluded(name, exclusions)

        def _add(name: str) -> None:
            seen.add(name)
            candidates.append(name)

        for selector in selectors:
            if selector.kind is SelectorKind.PACKAGE_PREFIX:
                logger.debug("Listing all packages under %s ...", selector.name)
                for name in self.loader.list_subpackages(selector.name):
                    if _accept(name):
                        _add(name)
            elif selector.kind is SelectorKind.PACKAGE:
                if _accept(selector.name):
                    _add(selector.name)
            elif selector.kind is SelectorKind.MODULE_PREFIX:
                logger.debug("Listing all modules under %s ...", selector.name)
                for name in sorted(self.loader.list_modules(selector.name)):
                    if _accept(name):
                        self.loader.load(name)
                        _add(name)
            elif _accept(selector.name):
                self.loader.load(selector.name)
                _add(selector.name)
        return candidates

    def _fetch(self, package: str, function: str | None = None) -> Any:
        response = self.provider.describe(package, function)
        if not response.ok:
            locator = package if function is None else f"{package}{SEPARATOR}{function}"
            raise FetchFailure(locator, response.status, response.message)
        return metadata.clean(response.payload)

    def _refresh(self, package: str, stored: Any, disk_mtime: int | None, pos: int, target: int) -> bool:
        """Re-fetch and rewrite one package. Returns False if it is excluded."""

        meta = self._fetch(package)
        listing = self.provider.enumerate(package)
        if not listing.ok:
            raise FetchFailure(package, listing.status, listing.message)
        function_names = list(listing.payload or [])

        if metadata.is_excluded(meta):
            logger.info("Package %s is excluded by its metadata, removing from database ...", package)
            self.store.purge_package(package)
            return False

        # dist and extra may have been set by hand through update().
        dist = meta.get(metadata.DIST_KEY)
        if dist is None and stored is not None:
            dist = stored["dist"]
        self.store.upsert_package(
            package,
            summary=meta.get("summary"),
            meta=meta,
            dist=dist,
            extra=stored["extra"] if stored is not None else None,
            mtime=disk_mtime,
        )
        self.store.delete_functions(package)

        for j, function in enumerate(function_names, start=1):
            message = f"Processing function {package}{SEPARATOR}{function} ..."
            logger.debug(message)
            self._report_progress(pos + j / len(function_names), target, message)
            function_meta = self._fetch(package, function)
            if metadata.is_excluded(function_meta):
                logger.debug("Function %s%s%s is excluded, skipped", package, SEPARATOR, function)
                continue
            metadata.strip_excluded_args(function_meta)
            self.store.upsert_function(
                package,
                function,
                summary=function_meta.get("summary"),
                meta=function_meta,
                dist=function_meta.get(metadata.DIST_KEY, dist),
                mtime=disk_mtime,
            )
        return True

    def _delete_missing(
        self,
        selectors: Sequence[Selector],
        exclusions: Sequence[str],
        present: set[str],
        report: SyncReport,
    ) -> None:
        for name in self.store.package_names():
            if name in present or not any(selector.covers(name) for selector in selectors):
                continue
            # Excluded by the caller, not vanished.
            if is_excluded(name, exclusions):
                continue
            if report.dry_run:
                report.plan("delete", name)
                continue
            logger.info("Package %s no longer exists, deleting from database ...", name)
            self.store.purge_package(name)
            report.deleted.append(name)

    def run(
        self,
        entries: Sequence[str],
        *,
        exclude: Iterable[str] = (),
        force: bool = False,
        delete: bool = True,
        dry_run: bool = False,
    ) -> SyncReport:
        selectors = parse_selectors(entries)
        exclusions = list(exclude)
        report = SyncReport(dry_run=dry_run)

        report.candidates = self.expand(selectors, exclusions)
        target = len(report.candidates)
        self._report_progress(0, target, "Starting")

        for i, package in enumerate(report.candidates, start=1):
            message = f"Processing package {package} ..."
            logger.debug(message)
            self._report_progress(i - 1, target, message)

            stored = self.store.get_package(package)
            disk_mtime = self.loader.source_mtime(package)
            stored_mtime = stored["mtime"] if stored is not None else None
            if not needs_refresh(stored_mtime, disk_mtime, exists=stored is not None, force=force):
                logger.debug("%s hasn't changed since last recorded, skipped", package)
                report.skipped.append(package)
                continue

            if dry_run:
                report.plan("refresh", package, {"stored_mtime": stored_mtime, "disk_mtime": disk_mtime})
                continue

            if self._refresh(package, stored, disk_mtime, i - 1, target):
                report.refreshed.append(package)
            else:
                report.excluded.append(package)

        self._report_progress(target, target, "Done")

        if delete:
            excluded = set(report.excluded)
            present = {name for name in report.candidates if name not in excluded}
            self._delete_missing(selectors, exclusions, present, report)
        return report

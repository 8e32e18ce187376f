########## ini_config.py

import logging
import os
from configparser import ConfigParser, Error as ConfigParserError
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from html_publisher.domain.errors import ConfigurationError
from html_publisher.domain.models import ReportTarget
from html_publisher.services.target_registry import TargetRegistry

log = logging.getLogger(__name__)

INI_DEFAULT_NAME = "htmlpublisher.ini"
INI_ENV_VAR = "HTMLPUBLISHER_INI"
REPORT_SECTION_PREFIX = "report:"
CURRENT_CONFIG_VERSION = 2

TARGET_KEYS = {
    "report_dir",
    "report_files",
    "failure_regex",
    "keep_all",
    "always_link_to_last_build",
    "allow_missing",
}
LEGACY_TARGET_KEYS = {"wrapper_name"}


@dataclass(frozen=True)
class AppSettings:
    jobs_base: Path
    job_name: str
    job_root: Path
    workspace: Path
    root_url: Optional[str]

    header_template: Optional[Path]
    footer_template: Optional[Path]
    scan_workers: int
    log_level: str

    flask_host: str
    flask_port: int
    flask_debug: bool


class IniConfig:
    """
    Adapter around ConfigParser and filesystem resolution.
    Keeps INI handling out of the publishing code.
    """

    def __init__(self, ini_path: Path):
        self._ini_path = ini_path
        self._cfg = ConfigParser(interpolation=None)
        try:
            read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
        except ConfigParserError as e:
            raise ConfigurationError(f"INI file {ini_path} is malformed: {e}") from e
        if not read_ok:
            raise FileNotFoundError(f"INI file not found or unreadable: {ini_path}")

    @property
    def ini_path(self) -> Path:
        return self._ini_path

    @staticmethod
    def from_env_or_default() -> "IniConfig":
        ini_raw = (os.getenv(INI_ENV_VAR) or "").strip()
        # If HTMLPUBLISHER_INI is not set, default to repo-root-relative ini location
        ini_path = Path(ini_raw) if ini_raw else (Path(__file__).resolve().parents[2] / INI_DEFAULT_NAME)
        return IniConfig(ini_path)

    def _resolve(self, raw: str) -> Path:
        raw = os.path.expandvars(os.path.expanduser(raw))
        path = Path(raw)
        if not path.is_absolute():
            # relative paths are relative to the INI file, not the cwd
            path = self._ini_path.parent / path
        return path.resolve()

    def _cfg_path(self, section: str, key: str, required: bool = True) -> Optional[Path]:
        raw = (self._cfg.get(section, key, fallback="") or "").strip()
        if raw:
            return self._resolve(raw)
        if required:
            raise ConfigurationError(f"Missing INI value for {key} in section [{section}]")
        return None

    def _getint(self, section: str, key: str, fallback: int) -> int:
        try:
            return self._cfg.getint(section, key, fallback=fallback)
        except ValueError as e:
            raise ConfigurationError(f"[{section}] {key} must be an integer: {e}") from e

    def _getboolean(self, section: str, key: str, fallback: bool) -> bool:
        try:
            return self._cfg.getboolean(section, key, fallback=fallback)
        except ValueError as e:
            raise ConfigurationError(f"[{section}] {key} must be a boolean: {e}") from e

    def config_version(self) -> int:
        return self._getint("publisher", "config_version", fallback=1)

    def load_settings(self) -> AppSettings:
        # Required paths
        jobs_base = self._cfg_path("paths", "jobs_base")

        job_name = (self._cfg.get("job", "name", fallback="") or "").strip()
        if not job_name:
            raise ConfigurationError("Missing INI value for name in section [job]")
        job_root = jobs_base / job_name
        workspace = self._cfg_path("paths", "workspace", required=False) or (job_root / "workspace")
        root_url = (self._cfg.get("job", "root_url", fallback="") or "").strip() or None

        # Publisher
        header_template = self._cfg_path("publisher", "header_template", required=False)
        footer_template = self._cfg_path("publisher", "footer_template", required=False)
        scan_workers = max(1, self._getint("publisher", "scan_workers", fallback=1))
        log_level = (self._cfg.get("publisher", "log_level", fallback="INFO") or "").strip().upper() or "INFO"

        # Flask
        flask_host = (self._cfg.get("server", "host", fallback="127.0.0.1") or "").strip() or "127.0.0.1"
        flask_port = self._getint("server", "port", fallback=5000)
        flask_debug = self._getboolean("server", "debug", fallback=False)

        # Validate
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"[publisher] log_level {log_level!r} is not a logging level")
        for template in (header_template, footer_template):
            if template is not None and not template.is_file():
                raise ConfigurationError(f"Wrapper template not found: {template}")

        return AppSettings(
            jobs_base=jobs_base,
            job_name=job_name,
            job_root=job_root,
            workspace=workspace,
            root_url=root_url,
            header_template=header_template,
            footer_template=footer_template,
            scan_workers=scan_workers,
            log_level=log_level,
            flask_host=flask_host,
            flask_port=flask_port,
            flask_debug=flask_debug,
        )

    def _target_values(self, section: str, version: int) -> Dict[str, str]:
        values = {k: v for k, v in self._cfg.items(section)}
        for key in LEGACY_TARGET_KEYS & values.keys():
            if version >= 2:
                raise ConfigurationError(f"[{section}] {key} is no longer supported")
            # v1 files stored the wrapper file name; it is fixed now
            log.info("[htmlpublisher] Ignoring legacy setting %s in [%s]", key, section)
            values.pop(key)

        unknown = sorted(values.keys() - TARGET_KEYS - set(self._cfg.defaults()))
        if unknown:
            raise ConfigurationError(f"[{section}] unknown setting(s): {', '.join(unknown)}")
        return values

    def load_targets(self) -> TargetRegistry:
        version = self.config_version()
        if version not in (1, CURRENT_CONFIG_VERSION):
            raise ConfigurationError(f"Unsupported config_version {version} in {self._ini_path}")

        targets: List[ReportTarget] = []
        for section in self._cfg.sections():
            if not section.startswith(REPORT_SECTION_PREFIX):
                continue
            name = section[len(REPORT_SECTION_PREFIX):].strip()
            values = self._target_values(section, version)

            report_dir = (values.get("report_dir") or "").strip()
            if not report_dir:
                raise ConfigurationError(f"Missing INI value for report_dir in section [{section}]")

            targets.append(ReportTarget(
                name=name,
                source_dir=report_dir,
                file_pattern=(values.get("report_files") or "").strip() or "index.html",
                failure_pattern=(values.get("failure_regex") or "").strip() or None,
                keep_all=self._getboolean(section, "keep_all", fallback=False),
                always_link_latest=self._getboolean(section, "always_link_to_last_build", fallback=False),
                allow_missing=self._getboolean(section, "allow_missing", fallback=False),
            ))

        return TargetRegistry(targets)

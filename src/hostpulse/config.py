"""
Runtime configuration. One immutable object, built once by the CLI and
handed to the aggregator and the web app.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

DEFAULT_REFRESH_INTERVAL = 60
DEFAULT_REQUEST_DEADLINE = 60.0
DEFAULT_PROBE_TIMEOUT = 5.0

PHP_LOG_CANDIDATES = (
    "/var/log/php_errors.log",
    "/var/log/php-fpm/error.log",
    "/var/log/apache2/error.log",
    "/var/log/nginx/error.log",
    "/var/log/www/error.log",
    "/var/log/php-fpm/www-error.log",
)

SQL_LOG_CANDIDATES = (
    "/var/log/mysql/error.log",
    "/var/log/mariadb/mariadb.err",
    "/var/lib/mysql/*.err",
)

PROXY_LOG_CANDIDATES = (
    "/var/log/openresty/error.log",
    "/usr/local/openresty/nginx/logs/error.log",
    "/var/log/nginx/error.log",
)


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class MonitorConfig:
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL   # seconds, browser + watch
    request_deadline: float = DEFAULT_REQUEST_DEADLINE
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    network_sample_seconds: float = 1.0
    privileged_capture: bool = False    # sudo -n iftop; needs a NOPASSWD rule
    max_workers: int = 8

    php_logs: Tuple[str, ...] = PHP_LOG_CANDIDATES
    sql_logs: Tuple[str, ...] = SQL_LOG_CANDIDATES
    proxy_logs: Tuple[str, ...] = PROXY_LOG_CANDIDATES
    syslog_path: str = "/var/log/syslog"
    mail_spool: str = "/var/mail"
    ufw_log_path: str = "/var/log/ufw.log"

    def validate(self) -> "MonitorConfig":
        if self.refresh_interval <= 0:
            raise ConfigError(f"refresh interval must be positive, got {self.refresh_interval}")
        if self.request_deadline <= 0:
            raise ConfigError(f"request deadline must be positive, got {self.request_deadline}")
        if self.probe_timeout <= 0:
            raise ConfigError(f"probe timeout must be positive, got {self.probe_timeout}")
        if self.probe_timeout > self.request_deadline:
            raise ConfigError(
                f"probe timeout ({self.probe_timeout}s) exceeds the request "
                f"deadline ({self.request_deadline}s)"
            )
        if self.network_sample_seconds <= 0:
            raise ConfigError("network sample window must be positive")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")
        return self

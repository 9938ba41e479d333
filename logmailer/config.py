"""Configuration loading from CLI args, env vars, and a YAML file."""

import os
import logging
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates", "email.html.j2")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _parse_list(value) -> tuple[str, ...]:
    """Accept a YAML list or a comma-separated string."""
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(v).strip() for v in value if str(v).strip())


@dataclass(frozen=True)
class Config:
    # category (supervisord event name) -> watched process names, in aggregation order
    targets: dict[str, tuple[str, ...]] = field(default_factory=dict)
    error_category: str = "PROCESS_LOG_STDERR"
    broadcast_marker: str = "BROADCST:EMAIL"
    debounce_sec: float = 30.0
    template_path: str = DEFAULT_TEMPLATE
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_starttls: bool = False
    smtp_ssl: bool = False
    smtp_timeout: float = 30.0
    smtp_user: str = ""
    smtp_password: str = ""
    mail_from: str = "log-mailer@localhost"
    mail_to: tuple[str, ...] = ()
    mail_subject: str = "supervisor logs"
    log_level: str = "INFO"


def load_yaml_config(path: str | None) -> dict:
    """Load the YAML config file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded YAML config from %s", path)
        return data
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}


def validate_config(config: Config) -> Config:
    """Raise ValueError if the config cannot drive the pipeline."""
    if not config.targets:
        raise ValueError("No targets configured: map at least one event category to process names")
    if config.error_category not in config.targets:
        raise ValueError(f"Error category {config.error_category!r} has no targets")
    if not config.mail_to:
        raise ValueError("No mail recipients configured (MAIL_TO or mail.to)")
    if config.debounce_sec <= 0:
        raise ValueError(f"Debounce interval must be positive, got {config.debounce_sec}")
    return config


def load_config(cli_args, yaml_data: dict) -> Config:
    """Build Config from CLI args, env vars, and parsed YAML data.

    Env vars win over YAML values; SMTP credentials come from env only.
    """
    env = os.environ
    smtp = yaml_data.get("smtp") or {}
    mail = yaml_data.get("mail") or {}

    targets = {
        str(category): _parse_list(names)
        for category, names in (yaml_data.get("targets") or {}).items()
    }

    template_path = getattr(cli_args, "template", None) or yaml_data.get("template") or Config.template_path

    config = Config(
        targets=targets,
        error_category=env.get("ERROR_CATEGORY", yaml_data.get("error_category", Config.error_category)),
        broadcast_marker=env.get("BROADCAST_MARKER", yaml_data.get("broadcast_marker", Config.broadcast_marker)),
        debounce_sec=float(env.get("DEBOUNCE_SEC", yaml_data.get("timeout", Config.debounce_sec))),
        template_path=template_path,
        smtp_host=env.get("SMTP_HOST", smtp.get("host", Config.smtp_host)),
        smtp_port=int(env.get("SMTP_PORT", smtp.get("port", Config.smtp_port))),
        smtp_starttls=_parse_bool(env.get("SMTP_STARTTLS", smtp.get("starttls", Config.smtp_starttls))),
        smtp_ssl=_parse_bool(env.get("SMTP_SSL", smtp.get("ssl", Config.smtp_ssl))),
        smtp_timeout=float(env.get("SMTP_TIMEOUT", smtp.get("timeout", Config.smtp_timeout))),
        smtp_user=env.get("SMTP_USER", Config.smtp_user),
        smtp_password=env.get("SMTP_PASSWORD", Config.smtp_password),
        mail_from=env.get("MAIL_FROM", mail.get("from", Config.mail_from)),
        mail_to=_parse_list(env.get("MAIL_TO", mail.get("to"))),
        mail_subject=env.get("MAIL_SUBJECT", mail.get("subject", Config.mail_subject)),
        log_level=env.get("LOG_LEVEL", Config.log_level).upper(),
    )
    return validate_config(config)

import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Licensing tier
    PRO_ENABLED: bool = False
    FREE_TEMPLATE_LIMIT: int = 2 * 2  # two rows of two tiles
    TEMPLATE_ORDER: str = ""  # comma-separated template ids (pro only)
    GET_PRO_URL: str = "https://bdecent.de/kickstart/"

    # Directory / authorization
    DIRECTORY_BACKEND: str = "sql"  # "sql" | "static"
    SITE_ADMIN_IDS: str = ""  # comma-separated user ids
    MANAGE_TEMPLATES_CAPABILITY: str = "format/kickstart:manage_templates"

    # Rendering
    BASE_URL: str = "http://localhost:8000"
    SYSTEM_CONTEXT_ID: int = 1
    PLUGIN_COMPONENT: str = "format_kickstart"
    CONFIRM_PATH: str = "/course/format/kickstart/confirm.php"
    CURRENT_LANGUAGE: str = "en"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def parse_id_list(raw: Optional[str]) -> list[int]:
    """Parse a comma-separated id list, dropping blanks, junk and duplicates.

    Order of first appearance is preserved.
    """
    ids: list[int] = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            value = int(part)
        except ValueError:
            logging.getLogger("template_catalog").warning(
                "config.invalid_id", extra={"value": part}
            )
            continue
        if value not in ids:
            ids.append(value)
    return ids


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("template_catalog")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = ["DATABASE_URL"]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True

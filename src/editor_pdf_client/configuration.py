from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

# Load environment variables from .env file
load_dotenv()

CONFIG_ENV_VAR = "EDITOR_PDF_CONFIG"
API_URL_ENV_VAR = "EDITOR_PDF_API_URL"

DEFAULTS: Dict[str, Any] = {
    "api": {
        "base_url": "http://localhost:8080/api/v1",
        "timeout": 30.0,
    },
    "cache": {
        "document_stale_seconds": 60.0,
        "list_stale_seconds": 30.0,
    },
    "preview": {
        "min_zoom": 0.5,
        "max_zoom": 3.0,
        "zoom_step": 0.25,
        "default_zoom": 1.0,
        "token_param": "t",
    },
    "notices": {
        "process_success": "Document processed successfully",
        "process_error": "Could not process document",
        "upload_success": "Document uploaded successfully",
        "upload_error": "Could not upload document",
        "delete_success": "Document deleted successfully",
        "delete_error": "Could not delete document",
        "retry_hint": "Please try again",
        "discard_prompt": "Discard pending changes? Unsaved instructions will be lost.",
    },
    "logging": {
        "level": "INFO",
    },
}


def _config_file_path() -> Optional[Path]:
    raw = os.environ.get(CONFIG_ENV_VAR)
    if not raw:
        return None
    path = Path(raw).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Config file named by {CONFIG_ENV_VAR} not found at {path}")
    return path


@lru_cache(maxsize=1)
def _load_default_config() -> DictConfig:
    base = OmegaConf.create(DEFAULTS)
    config_path = _config_file_path()
    if config_path is not None:
        base = OmegaConf.merge(base, OmegaConf.load(config_path))
    api_url = os.environ.get(API_URL_ENV_VAR)
    if api_url:
        base.api.base_url = api_url
    return base


def get_default_config_container(resolve: bool = False) -> Dict[str, Any]:
    config = _load_default_config()
    return OmegaConf.to_container(config, resolve=resolve)  # type: ignore[return-value]


def make_runtime_config(overrides: Optional[Dict[str, Any]] = None) -> DictConfig:
    """
    Build the effective configuration for one client instance.

    Defaults (plus the optional YAML file and environment overrides) are
    copied, locked in struct mode and merged with ``overrides``, so a
    misspelled key fails loudly instead of being ignored.

    Args:
        overrides: Nested mapping of values to replace, e.g.
            ``{"api": {"base_url": "http://testserver/api/v1"}}``

    Returns:
        Merged DictConfig
    """
    base = OmegaConf.create(get_default_config_container(resolve=False))
    OmegaConf.set_struct(base, True)

    if not overrides:
        return base
    merged = DictConfig(OmegaConf.merge(base, OmegaConf.create(overrides)))
    return merged


def configure_logging(config: Optional[DictConfig] = None) -> None:
    level_name = str((config or _load_default_config()).logging.level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

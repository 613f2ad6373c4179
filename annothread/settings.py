"""Runtime settings: packaged YAML defaults overlaid by environment variables."""

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from annothread.models import FocusConfig, SortKey, ThreadDimensions
from annothread.utils.json import parse_json_object

logger = logging.getLogger(__name__)

_DEFAULTS_PATH = Path(__file__).parent / "sidebar_defaults.yml"


class Settings(BaseModel):
    thread_dimensions: ThreadDimensions = Field(default_factory=ThreadDimensions)
    anchoring_timeout: float = 0.5
    anchor_status_coalesce_delay: float = 0.01
    default_sort_key: SortKey = SortKey.LOCATION
    update_immediately: bool = False
    route: str = "sidebar"
    focus: FocusConfig = Field(default_factory=FocusConfig)
    focused_group: str | None = None


def _load_defaults(path: Path) -> dict:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_settings(env_file: Path | None = None, defaults_path: Path = _DEFAULTS_PATH) -> Settings:
    """Build Settings from the YAML defaults, then ANNOTHREAD_* env vars.

    ANNOTHREAD_FOCUS holds the focus config as JSON, e.g.
    '{"user": {"username": "alice", "display_name": "Alice"}}'.
    """
    load_dotenv(env_file)
    data = _load_defaults(defaults_path)

    if value := os.environ.get("ANNOTHREAD_UPDATE_IMMEDIATELY"):
        data["update_immediately"] = value.lower() in ("1", "true", "yes")
    if value := os.environ.get("ANNOTHREAD_DEFAULT_SORT_KEY"):
        data["default_sort_key"] = value
    if value := os.environ.get("ANNOTHREAD_ROUTE"):
        data["route"] = value
    if value := os.environ.get("ANNOTHREAD_GROUP"):
        data["focused_group"] = value
    if value := os.environ.get("ANNOTHREAD_ANCHORING_TIMEOUT"):
        data["anchoring_timeout"] = float(value)
    if value := os.environ.get("ANNOTHREAD_FOCUS"):
        focus = parse_json_object(value)
        if focus is None:
            logger.warning("Ignoring invalid ANNOTHREAD_FOCUS value %r", value)
        else:
            data["focus"] = focus

    return Settings.model_validate(data)

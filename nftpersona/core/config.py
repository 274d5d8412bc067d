"""Runtime configuration: config.yaml plus secrets from the environment."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

CONFIG_PATH = Path(__file__).parent.parent.parent / "config.yaml"


def load_config(path: Path | None = None) -> dict:
    load_dotenv()
    config_path = path or CONFIG_PATH
    if config_path.exists():
        return yaml.safe_load(config_path.read_text()) or {}
    return {}


def section(config: dict, name: str) -> dict:
    return config.get(name) or {}


def alchemy_api_key() -> str:
    return os.getenv("ALCHEMY_API_KEY") or os.getenv("NEXT_PUBLIC_ALCHEMY_KEY", "")


def anthropic_api_key() -> str:
    return os.getenv("ANTHROPIC_API_KEY", "")

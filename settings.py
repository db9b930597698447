#!/usr/bin/env python3
"""
Settings management for the Document Directory Classifier.

Locates and loads the directory layout (config.yml). Lookup order:
- The --config command line argument
- The DDC_CONFIG environment variable (a .env file is honoured)
- The platform config directory:
  - macOS: ~/Library/Application Support/ddc/config.yml
  - Linux: ~/.config/ddc/config.yml
  - Windows: %APPDATA%/ddc/config/config.yml
"""

import logging
import os
import re
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv

from classifier_rules import ClassifierRule, ConfigError, compile_rules

# Load environment variables from .env file (if it exists and is accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    pass

logger = logging.getLogger("ddc.settings")

APP_NAME = "ddc"
CONFIG_FILENAME = "config.yml"

# Default settings, overridable through the environment
DEFAULT_SETTINGS = {
    "config": "",
    "input_dir": "",
    "output_dir": "",
    "log_level": "INFO",
    "log_file": "",
}

# Environment variable for each setting
ENV_VARS = {
    "config": "DDC_CONFIG",
    "input_dir": "DDC_INPUT_DIR",
    "output_dir": "DDC_OUTPUT_DIR",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
}


class ConfigFileError(ConfigError):
    """The layout file could not be read or parsed."""


def get_env_settings() -> dict:
    """Get settings from environment variables, with defaults for unset ones."""
    settings = DEFAULT_SETTINGS.copy()
    for key, env_var in ENV_VARS.items():
        value = os.environ.get(env_var)
        if value:
            settings[key] = value
    settings["log_level"] = settings["log_level"].upper()
    return settings


def get_config_dir() -> Path:
    """Get the platform-appropriate config directory."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming"))
        return Path(appdata) / APP_NAME / "config"
    # Linux and others - follow XDG spec
    xdg_config = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(xdg_config) / APP_NAME


def resolve_config_path(explicit: str | Path | None = None) -> Path:
    """Find the layout file to use.

    Priority: explicit path > DDC_CONFIG environment variable > config dir
    """
    if explicit:
        return Path(explicit).expanduser()
    env_config = get_env_settings()["config"]
    if env_config:
        return Path(env_config).expanduser()
    return get_config_dir() / CONFIG_FILENAME


def read_config_text(path: str | Path) -> str:
    """Read the raw layout file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        raise ConfigFileError(f"Failed to read configuration file '{path}': {e}") from e


class LayoutLoader(yaml.BaseLoader):
    """YAML loader that keeps scalars as strings but resolves nulls.

    A keyword written as 2024 stays the text "2024", while ~, null and an
    empty value load as None.
    """


LayoutLoader.add_implicit_resolver(
    "tag:yaml.org,2002:null",
    re.compile(r"^(?:~|null|Null|NULL|)$"),
    list("~nN") + [""],
)
LayoutLoader.add_constructor("tag:yaml.org,2002:null", lambda loader, node: None)


def parse_layout(text: str, source: str | Path = "<string>") -> list:
    """Parse layout YAML into a list of directory entries."""
    try:
        layout = yaml.load(text, Loader=LayoutLoader)
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Failed to parse configuration file '{source}': {e}") from e

    if layout is None:
        raise ConfigFileError(f"No root element found in '{source}'")
    if not isinstance(layout, list):
        raise ConfigFileError(
            f"Unexpected configuration file format in '{source}'. Expected a list of directories."
        )
    return layout


def load_rules(path: str | Path) -> list[ClassifierRule]:
    """Read, parse and compile a layout file."""
    text = read_config_text(path)
    rules = compile_rules(parse_layout(text, path))
    logger.info(f"Loaded {len(rules)} rules from {path}")
    return rules

# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Configuration utilities for the login gate.
Provides configuration file loading and normalisation helpers.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def load_config_from_env(prefix: str = "LOGINGATE_") -> Dict[str, str]:
    """
    Load configuration from environment variables with given prefix.
    """
    config = {}

    for key, value in os.environ.items():
        if key.startswith(prefix):
            # Remove prefix and convert to lowercase
            config_key = key[len(prefix):].lower()
            config[config_key] = value

    return config


def flatten_config(config: Dict[str, Any], parent: str = "", separator: str = ".") -> Dict[str, Any]:
    """
    Flatten nested mappings into dotted keys.

    ``{"tandc": {"link": "x"}}`` becomes ``{"tandc.link": "x"}``. Lists and
    scalars are kept as values.
    """
    result = {}

    for key, value in config.items():
        full_key = f"{parent}{separator}{key}" if parent else str(key)
        if isinstance(value, dict):
            result.update(flatten_config(value, full_key, separator))
        else:
            result[full_key] = value

    return result


def load_config_file(file_path: str) -> Dict[str, Any]:
    """Load configuration from a file (JSON or YAML)."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    file_ext = Path(file_path).suffix.lower()

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_ext in ['.json']:
            data = json.load(f)
        elif file_ext in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        else:
            raise ValueError(f"Unsupported configuration file format: {file_ext}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {file_path}")
    return data


def get_config_value(config: Dict[str, Any], *keys: str, default: Optional[Any] = None) -> Any:
    """Return the value of the first key present in config, else default."""
    for key in keys:
        if key in config and config[key] is not None:
            return config[key]
    return default

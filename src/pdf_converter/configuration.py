from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

_HERE = Path(__file__).resolve()
_CANDIDATE_CONFIG_PATHS = [_HERE.parent / "config/config.yaml"] + [parent / "config/config.yaml" for parent in _HERE.parents[1:4]]

CONFIG_PATH = next((path for path in _CANDIDATE_CONFIG_PATHS if path.exists()), None)
if CONFIG_PATH is None:  # pragma: no cover - fail fast on a broken install
    raise FileNotFoundError("Default config.yaml could not be located; the package data may be missing.")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Environment variable -> (config key, parser)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "PDF_CONVERTER_BASE_URL": ("client.base_url", str),
    "PDF_CONVERTER_TIMEOUT": ("client.timeout_seconds", float),
    "PDF_CONVERTER_DOWNLOAD_DIR": ("client.download_dir", str),
    "CONVERTER_URL": ("server.converter_url", str),
    "OUTPUT_DIR": ("server.output_dir", str),
    "DEBUG": ("server.debug", _parse_bool),
}


@lru_cache(maxsize=1)
def _load_default_config() -> DictConfig:
    if not CONFIG_PATH.exists():
        raise FileNotFoundError(f"Default config not found at {CONFIG_PATH}")
    return OmegaConf.load(CONFIG_PATH)


def get_default_config_container(resolve: bool = False) -> Dict[str, Any]:
    config = _load_default_config()
    return OmegaConf.to_container(config, resolve=resolve, enum_to_str=True)  # type: ignore[return-value]


def environment_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Collect overrides from environment variables (after loading ``.env``).

    Returns:
        A nested dictionary suitable for ``make_runtime_config``
    """
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    overrides = OmegaConf.create({})
    for variable, (key, parse) in ENV_OVERRIDES.items():
        raw = environ.get(variable)
        if raw is None or raw == "":
            continue
        OmegaConf.update(overrides, key, parse(raw), force_add=True)
    return OmegaConf.to_container(overrides)  # type: ignore[return-value]


def make_runtime_config(overrides: Dict[str, Any]) -> DictConfig:
    base_container = OmegaConf.to_container(_load_default_config(), resolve=False)
    base = OmegaConf.create(base_container)
    OmegaConf.set_struct(base, True)

    cli_config = OmegaConf.create(overrides)
    merged = DictConfig(OmegaConf.merge(base, cli_config))
    return merged


def load_settings(overrides: Optional[Dict[str, Any]] = None, environ: Optional[Dict[str, str]] = None) -> DictConfig:
    """
    Build the effective configuration: packaged defaults, then environment, then explicit overrides.

    Raises:
        omegaconf.errors.ConfigKeyError: If an override names an unknown key
    """
    merged = make_runtime_config(environment_overrides(environ))
    OmegaConf.set_struct(merged, True)
    if overrides:
        merged = DictConfig(OmegaConf.merge(merged, OmegaConf.create(overrides)))
    return merged

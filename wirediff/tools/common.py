#!/usr/bin/env python3
"""
Shared plumbing for the wirediff command-line tools.
"""

import argparse
import importlib
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Union

from ..core.errors import ConfigurationError
from ..core.scenario import DifferentialBackend

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_INVALID = 2
EXIT_GATE_FAILED = 3

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO"):
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def add_common_arguments(parser: argparse.ArgumentParser, default_log_level: str = "INFO"):
    parser.add_argument("--fail-on-gate", action=argparse.BooleanOptionalAction, default=True,
                        help="Exit non-zero when the gate fails (default: enabled)")
    parser.add_argument("--log-level", default=default_log_level,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity")


def load_backend_factory(spec: str) -> Callable[[], DifferentialBackend]:
    """Resolve a "package.module:callable" spec to a backend factory.

    The callable is invoked with no arguments and must return an object
    with a name property and an execute(scenario) method.
    """
    if not spec or ":" not in spec:
        raise ConfigurationError(f"backend spec must look like 'module:factory': {spec!r}")
    module_name, _, attr = spec.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"cannot import backend module {module_name!r}: {e}") from e

    factory = module
    for part in attr.split("."):
        factory = getattr(factory, part, None)
        if factory is None:
            raise ConfigurationError(f"backend factory {spec!r} not found")
    if not callable(factory):
        raise ConfigurationError(f"backend factory {spec!r} is not callable")
    return factory


def load_backend(spec: str) -> DifferentialBackend:
    backend = load_backend_factory(spec)()
    if not isinstance(backend, DifferentialBackend):
        raise ConfigurationError(f"backend factory {spec!r} returned {type(backend).__name__}, "
                                 "which lacks name/execute")
    return backend


def write_json(path: Union[str, Path], data: Dict[str, Any]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
    logger.info(f"Wrote {path}")
    return path


def format_percent(ratio: float) -> str:
    return f"{ratio * 100.0:.2f}%"

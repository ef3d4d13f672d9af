"""Load model definitions from a directory of Python modules.

Each ``*.py`` file (except ``__init__.py`` and files starting with ``_``)
is imported by path and scanned for ``Table`` subclasses and ``Index``
instances.

Usage:
    from surql_sync.schema.loader import load_definables, read_model_files

    definables = load_definables("models")
    files = read_model_files("models")  # {"user.py": "...source..."}
"""

import importlib.util
import logging
from pathlib import Path

from surql_sync.orm import Index, Table

logger = logging.getLogger(__name__)


def _model_paths(directory: Path) -> list[Path]:
    return sorted(p for p in directory.glob("*.py") if not p.name.startswith("_"))


def read_model_files(directory: str | Path) -> dict[str, str]:
    """Read the model source files in *directory*, keyed by file name.

    A missing directory yields an empty mapping.
    """
    models_dir = Path(directory)
    if not models_dir.is_dir():
        return {}
    return {path.name: path.read_text() for path in _model_paths(models_dir)}


def load_module_definables(path: Path) -> list[type[Table] | Index]:
    """Import one model file and return the definitions it exposes.

    Raises:
        ImportError: If the module cannot be loaded.
    """
    module_name = f"_surql_models_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load model file: {path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    definables: list[type[Table] | Index] = []
    for value in vars(module).values():
        if isinstance(value, Index):
            definables.append(value)
        elif isinstance(value, type) and issubclass(value, Table) and value is not Table:
            definables.append(value)
    return definables


def load_definables(directory: str | Path) -> list[type[Table] | Index]:
    """Import every model file in *directory*.

    Files that fail to import are logged and skipped so one broken model
    does not hide the rest of the schema.

    Raises:
        FileNotFoundError: If *directory* does not exist.
    """
    models_dir = Path(directory)
    if not models_dir.is_dir():
        raise FileNotFoundError(f"Models directory not found: {models_dir}")

    definables: list[type[Table] | Index] = []
    for path in _model_paths(models_dir):
        try:
            definables.extend(load_module_definables(path))
        except Exception as e:
            logger.warning(f"Failed to load model file {path.name}: {e}")
    return definables

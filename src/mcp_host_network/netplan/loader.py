"""Load and merge every netplan document in a directory."""
import logging
from pathlib import Path
from typing import Iterable, Optional

from .errors import ConfigNotFound
from .merge import merge_documents
from .parser import load_document
from .schema import NetplanDocument

logger = logging.getLogger(__name__)


def list_config_files(directory: Path, suffixes: Iterable[str] = (".yaml",)) -> list[Path]:
    """
    List configuration files in ``directory`` sorted by file name.

    Hidden files, sub-directories and files without one of ``suffixes``
    are skipped. A missing directory yields an empty list.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []

    suffixes = tuple(suffixes)
    files = [
        path for path in directory.iterdir()
        if path.is_file()
        and not path.name.startswith(".")
        and path.name.endswith(suffixes)
    ]
    return sorted(files, key=lambda p: p.name)


def load_directory(directory: Path, suffixes: Iterable[str] = (".yaml",)) -> NetplanDocument:
    """
    Parse every configuration file and fold them into one document.

    Files are merged in name order, so later files override earlier ones.

    Raises:
        ConfigNotFound: If the directory holds no configuration file
        MalformedConfig: If any file fails to parse
    """
    merged: Optional[NetplanDocument] = None
    for path in list_config_files(directory, suffixes):
        document = load_document(path)
        if merged is None:
            merged = document
        else:
            merge_documents(merged, document)
        logger.debug(f"Loaded {path}")

    if merged is None:
        raise ConfigNotFound(Path(directory))
    merged.sort_interfaces()
    return merged

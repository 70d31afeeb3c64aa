"""Load flat key/value attribute files written next to a Mobly run."""

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

import yaml

from report_merger.models.report import Attribute
from report_merger.parsers.base import ReportParseError

log = logging.getLogger(__name__)


def load_attributes(attributes_file: Path) -> Sequence[Attribute]:
    """Load attributes from a YAML file.

    The file holds either a mapping (``key: value``) or a list of
    ``{key: ..., value: ...}`` entries; the list form allows repeated keys.

    Args:
        attributes_file: Path to the attribute file

    Returns:
        Attributes in file order, empty if the file does not exist

    Raises:
        ReportParseError: If the file is unreadable or not a flat key/value record

    """
    if not attributes_file.is_file():
        log.warning(
            "Attribute file not found, using no attributes: %s", attributes_file
        )
        return ()

    try:
        with attributes_file.open("rb") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ReportParseError(attributes_file, f"Cannot read attributes: {e}") from e
    except yaml.YAMLError as e:
        raise ReportParseError(attributes_file, f"Invalid YAML: {e}") from e

    if data is None:
        return ()
    if isinstance(data, Mapping):
        return tuple(
            Attribute(key=str(key), value=_to_text(value))
            for key, value in data.items()
        )
    if isinstance(data, Sequence) and not isinstance(data, str):
        return tuple(_entry_to_attribute(attributes_file, entry) for entry in data)

    raise ReportParseError(
        attributes_file,
        f"Expected a mapping or a list of entries, got {type(data).__name__}",
    )


def _entry_to_attribute(attributes_file: Path, entry: object) -> Attribute:
    if not isinstance(entry, Mapping) or "key" not in entry:
        raise ReportParseError(attributes_file, f"Invalid attribute entry: {entry!r}")
    return Attribute(key=str(entry["key"]), value=_to_text(entry.get("value")))


def _to_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)

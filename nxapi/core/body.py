"""Schemaless JSON bodies and results addressed by dotted paths.

``Body`` builds request payloads::

    Body().set("bgpInst.attributes.asn", "100").text

``Res`` wraps a JSON document (usually a response) for reading::

    res.get("imdata.0.bgpEntity.attributes.name").text
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .paths import MISSING, PathError, delete_path, get_path, set_path, split_path

logger = logging.getLogger(__name__)


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _loads(text: str) -> Any:
    """Parse ``text``; blank input is an empty document (None)."""
    if not text or not text.strip():
        return None
    return json.loads(text)


@dataclass(frozen=True)
class Body:
    """An immutable JSON text buffer with path-write operations.

    Every write returns a new Body. Writes against malformed JSON, or paths
    that cannot be applied, leave the buffer unchanged.

    A write parses and re-serializes the whole document in compact form, so
    the text is not preserved byte for byte: ``1e5`` becomes ``100000.0``,
    whitespace is dropped and duplicate keys collapse to the last value.
    Deleting a missing path returns the original text untouched.
    """

    text: str = ""

    def _write(self, path: str, value: Any) -> "Body":
        try:
            doc = _loads(self.text)
            doc = set_path(doc, split_path(path), value)
        except (ValueError, PathError) as e:
            logger.debug("Ignoring write to %r: %s", path, e)
            return self
        return Body(_dumps(doc))

    def set(self, path: str, value: Any) -> "Body":
        """Set ``path`` to ``value``, creating intermediate nodes."""
        return self._write(path, value)

    def set_raw(self, path: str, raw_value: str) -> "Body":
        """Set ``path`` to the raw JSON in ``raw_value`` (object, array or literal).

        Primarily used for building nested structures::

            Body().set_raw("bgpInst.attributes", Body().set("asn", "100").text)
        """
        try:
            value = json.loads(raw_value)
        except ValueError as e:
            logger.debug("Ignoring raw write to %r: %s", path, e)
            return self
        return self._write(path, value)

    def delete(self, path: str) -> "Body":
        """Delete ``path``. A missing path returns the body unchanged."""
        try:
            doc = _loads(self.text)
        except ValueError:
            return self
        if not delete_path(doc, split_path(path)):
            return self
        return Body(_dumps(doc))

    def res(self) -> "Res":
        return Res(self.text)

    def __str__(self) -> str:
        return self.text


class Res:
    """Read-only view of a JSON value.

    Missing paths never raise: they yield an empty Res whose ``text`` is ""
    and whose ``int()`` is 0. ``status_code`` is set on results produced by
    a completed HTTP exchange.
    """

    def __init__(self, raw: str = "", status_code: Optional[int] = None):
        self.status_code = status_code
        try:
            self._value = _loads(raw)
            self._exists = self._value is not None or raw.strip() == "null"
        except ValueError:
            self._value = None
            self._exists = False
        self._raw = raw.strip() if self._exists else ""

    @classmethod
    def from_value(cls, value: Any) -> "Res":
        if value is MISSING:
            return cls()
        res = cls()
        res._value = value
        res._exists = True
        res._raw = _dumps(value)
        return res

    def get(self, path: str) -> "Res":
        """Return the value at ``path`` (empty Res when absent)."""
        if not self._exists:
            return Res()
        return Res.from_value(get_path(self._value, split_path(path)))

    @property
    def exists(self) -> bool:
        return self._exists

    @property
    def value(self) -> Any:
        return self._value

    @property
    def raw(self) -> str:
        return self._raw

    @property
    def text(self) -> str:
        """String form: strings as-is, other scalars as JSON, "" when empty."""
        value = self._value
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return self._raw

    def int(self) -> int:
        value = self._value
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            try:
                return int(float(value))
            except ValueError:
                return 0
        return 0

    def float(self) -> float:
        value = self._value
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                return 0.0
        return 0.0

    def bool(self) -> bool:
        value = self._value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes")
        return bool(value)

    def array(self) -> List["Res"]:
        """Elements of an array; a single non-array value becomes a one-item list."""
        if not self._exists or self._value is None:
            return []
        if isinstance(self._value, list):
            return [Res.from_value(item) for item in self._value]
        return [self]

    def map(self) -> Dict[str, "Res"]:
        if isinstance(self._value, dict):
            return {key: Res.from_value(item) for key, item in self._value.items()}
        return {}

    def __repr__(self) -> str:
        return f"Res({self._raw!r})"

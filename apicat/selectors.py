"""Selector and exclusion grammar for synchronization.

====================  ==============  ==========================================
form                  kind            meaning
====================  ==============  ==========================================
``+Name::``           package prefix  already-loaded sub-packages of Name, no load
``+Name``             package         exactly Name, never loaded
``Name::``            module prefix   every loadable module under Name, loaded
``Name``              module          exactly Name, loaded
====================  ==============  ==========================================

A trailing ``::*`` is accepted wherever ``::`` is.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from apicat.errors import InputError, Suggestion

SEPARATOR = "::"

_PREFIX_RE = re.compile(r"\A(.+?)::\*?\Z")


class SelectorKind(str, Enum):
    PACKAGE_PREFIX = "package_prefix"
    PACKAGE = "package"
    MODULE_PREFIX = "module_prefix"
    MODULE = "module"


@dataclass(frozen=True)
class Selector:
    kind: SelectorKind
    name: str

    @classmethod
    def parse(cls, raw: str) -> Selector:
        entry = raw.strip()
        is_package = entry.startswith("+")
        if is_package:
            entry = entry[1:]
        match = _PREFIX_RE.match(entry)
        name = match.group(1) if match else entry
        if not name or name.startswith(SEPARATOR):
            raise InputError(
                f"Invalid selector {raw!r}",
                code="E1101",
                suggestion=Suggestion(
                    action="fix selector",
                    fix="Use Name, Name::, +Name or +Name::.",
                    example="apicat update-from-modules json::",
                ),
                details={"selector": raw},
            )
        if is_package:
            kind = SelectorKind.PACKAGE_PREFIX if match else SelectorKind.PACKAGE
        else:
            kind = SelectorKind.MODULE_PREFIX if match else SelectorKind.MODULE
        return cls(kind=kind, name=name)

    @property
    def is_prefix(self) -> bool:
        return self.kind in (SelectorKind.PACKAGE_PREFIX, SelectorKind.MODULE_PREFIX)

    @property
    def loads(self) -> bool:
        return self.kind in (SelectorKind.MODULE_PREFIX, SelectorKind.MODULE)

    def covers(self, name: str) -> bool:
        """True if ``name`` would have been a candidate of this selector."""
        if self.is_prefix:
            return name.startswith(self.name + SEPARATOR)
        return name == self.name


def parse_selectors(entries: Iterable[str]) -> list[Selector]:
    return [Selector.parse(entry) for entry in entries]


def is_excluded(name: str, exclusions: Iterable[str]) -> bool:
    """Prefix entries match the prefix itself and anything under it."""

    for entry in exclusions:
        entry = entry.strip().lstrip("+")
        match = _PREFIX_RE.match(entry)
        if match:
            prefix = match.group(1)
            if name == prefix or name.startswith(prefix + SEPARATOR):
                return True
        elif name == entry:
            return True
    return False

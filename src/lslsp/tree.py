"""
Parse tree for pipeline configurations.

The parser adapter (:mod:`lslsp.parser`) produces these nodes; the
validator and the document-symbol handler walk them.  Every node records
the offset of its first character in the source text so diagnostics can
be anchored without re-scanning.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union


class SectionType(str, enum.Enum):
    INPUT = 'input'
    FILTER = 'filter'
    OUTPUT = 'output'

    @classmethod
    def from_name(cls, name: str) -> SectionType | None:
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True)
class Attribute:
    name: str
    offset: int          # offset of the attribute name
    value: str           # raw source text of the value
    value_offset: int    # offset of the first character of the value


@dataclass(frozen=True)
class Plugin:
    name: str
    offset: int
    end: int
    attributes: tuple[Attribute, ...] = ()


@dataclass(frozen=True)
class Block:
    """One arm of a conditional: ``if``, ``else if`` or ``else``."""
    keyword: str                 # 'if', 'else if' or 'else'
    condition: str | None        # raw condition text, None for 'else'
    offset: int
    end: int
    body: tuple[BranchOrPlugin, ...] = ()


@dataclass(frozen=True)
class Branch:
    if_block: Block
    else_if_blocks: tuple[Block, ...] = ()
    else_block: Block | None = None

    @property
    def offset(self) -> int:
        return self.if_block.offset

    @property
    def end(self) -> int:
        last = self.else_block or (self.else_if_blocks[-1] if self.else_if_blocks else self.if_block)
        return last.end

    def blocks(self) -> list[Block]:
        """All arms in source order."""
        arms = [self.if_block, *self.else_if_blocks]
        if self.else_block is not None:
            arms.append(self.else_block)
        return arms


BranchOrPlugin = Union[Plugin, Branch]


@dataclass(frozen=True)
class PluginSection:
    section_type: SectionType
    offset: int
    end: int
    body: tuple[BranchOrPlugin, ...] = ()


@dataclass(frozen=True)
class Config:
    sections: tuple[PluginSection, ...] = field(default_factory=tuple)

    def _of(self, section_type: SectionType) -> list[PluginSection]:
        return [s for s in self.sections if s.section_type is section_type]

    @property
    def input(self) -> list[PluginSection]:
        return self._of(SectionType.INPUT)

    @property
    def filter(self) -> list[PluginSection]:
        return self._of(SectionType.FILTER)

    @property
    def output(self) -> list[PluginSection]:
        return self._of(SectionType.OUTPUT)

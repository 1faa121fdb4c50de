"""
Stem-Container fester Stelligkeit

Stems2, Stems4 und Stems5 halten je einen Wert pro Stem in kanonischer
Reihenfolge (vocals zuerst). Dieselbe Orchestrierung treibt damit 2-, 4-
und 5-Stem Separation; map_stems baut immer einen neuen Container
derselben Klasse.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, fields
from typing import Generic, TypeVar

from ..core.constants import MASK_FEATURE_SUFFIX, SUPPORTED_STEM_COUNTS
from ..core.exceptions import ConfigurationError, StemArityError

V = TypeVar("V")
W = TypeVar("W")


@dataclass(frozen=True)
class Stems(Generic[V]):
    """Basis aller Stem-Container; Felder definieren Namen und Reihenfolge."""

    @classmethod
    def stem_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def arity(cls) -> int:
        return len(fields(cls))

    @classmethod
    def mask_feature_names(cls) -> tuple[str, ...]:
        """Namen der Modell-Ausgaben, z.B. ("vocalsMask", "accompanimentMask")."""
        return tuple(f"{name}{MASK_FEATURE_SUFFIX}" for name in cls.stem_names())

    @classmethod
    def from_values(cls, values: Iterable[V]) -> "Stems[V]":
        """
        Baut einen Container aus Werten in kanonischer Reihenfolge.

        Raises:
            StemArityError: Anzahl passt nicht zur Stelligkeit
        """
        values = list(values)
        if len(values) != cls.arity():
            raise StemArityError(stems_type=cls.__name__, expected=cls.arity(), actual=len(values))
        return cls(*values)

    def values(self) -> tuple[V, ...]:
        return tuple(getattr(self, name) for name in self.stem_names())

    def items(self) -> list[tuple[str, V]]:
        return [(name, getattr(self, name)) for name in self.stem_names()]

    def map_stems(self, transform: Callable[[V], W]) -> "Stems[W]":
        """
        Wendet transform von links nach rechts an.

        Die erste Exception wird weitergereicht; es entsteht kein Container.
        """
        return type(self)(*[transform(value) for value in self.values()])

    async def async_map_stems(
        self, transform: Callable[[V], Awaitable[W]], concurrent: bool = True
    ) -> "Stems[W]":
        """
        Asynchrone Variante von map_stems.

        Args:
            transform: liefert pro Wert ein Awaitable
            concurrent: True plant alle Awaitables gleichzeitig ein und
                bricht bei der ersten Exception die übrigen ab; False wartet
                sie nacheinander ab

        Returns:
            Container derselben Klasse, Ergebnisse in kanonischer Reihenfolge
        """
        if not concurrent:
            results = []
            for value in self.values():
                results.append(await transform(value))
            return type(self)(*results)

        tasks = []
        try:
            for value in self.values():
                tasks.append(asyncio.ensure_future(transform(value)))
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            raise
        return type(self)(*results)


@dataclass(frozen=True)
class Stems2(Stems[V]):
    vocals: V
    accompaniment: V


@dataclass(frozen=True)
class Stems4(Stems[V]):
    vocals: V
    drums: V
    bass: V
    other: V


@dataclass(frozen=True)
class Stems5(Stems[V]):
    vocals: V
    piano: V
    drums: V
    bass: V
    other: V


_STEMS_BY_COUNT = {2: Stems2, 4: Stems4, 5: Stems5}


def stems_for_count(stem_count: int) -> type[Stems]:
    """
    Container-Klasse für 2, 4 oder 5 Stems.

    Raises:
        ConfigurationError: nicht unterstützte Anzahl
    """
    try:
        return _STEMS_BY_COUNT[stem_count]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported stem count {stem_count}",
            details={"stem_count": stem_count, "supported": SUPPORTED_STEM_COUNTS},
        ) from None

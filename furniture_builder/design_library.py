"""
design_library.py

The app-wide library of reusable stocks and assemblies, and the helpers used to
offer a loaded project's stocks/assemblies for import into it.
A project only ever reads from the library: placing an assembly copies the
library stocks it needs into the project, keeping their ids.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from .design_entities import Stock, Assembly
from .design_snapshot import deep_copy, generate_id, timestamp_now

logger = logging.getLogger(__name__)

LIBRARY_ID_PREFIX = "lib_"


class DesignLibrary:
    """Read-only collection of library stocks and assemblies."""
    def __init__(self, stocks: Optional[Sequence[Stock]] = None,
                 assemblies: Optional[Sequence[Assembly]] = None):
        self._stocks: Dict[str, Stock] = {s.id: deep_copy(s) for s in stocks or []}
        self._assemblies: Dict[str, Assembly] = {a.id: deep_copy(a) for a in assemblies or []}

    @property
    def stocks(self) -> List[Stock]:
        return deep_copy(list(self._stocks.values()))

    @property
    def assemblies(self) -> List[Assembly]:
        return deep_copy(list(self._assemblies.values()))

    def find_stock(self, stock_id: str) -> Optional[Stock]:
        return deep_copy(self._stocks.get(stock_id))

    def find_assembly(self, assembly_id: str) -> Optional[Assembly]:
        return deep_copy(self._assemblies.get(assembly_id))

    def with_items(self, stocks: Sequence[Stock] = (), assemblies: Sequence[Assembly] = ()) -> 'DesignLibrary':
        """Returns a new library extended with the given items (existing ids are replaced)."""
        merged_stocks = dict(self._stocks)
        merged_stocks.update({s.id: s for s in stocks})
        merged_assemblies = dict(self._assemblies)
        merged_assemblies.update({a.id: a for a in assemblies})
        logger.debug(f"Library extended with {len(stocks)} stock(s) and {len(assemblies)} assembly(ies)")
        return DesignLibrary(list(merged_stocks.values()), list(merged_assemblies.values()))

    def to_dict(self) -> Dict[str, Any]:
        return {"stocks": [s.to_dict() for s in self._stocks.values()],
                "assemblies": [a.to_dict() for a in self._assemblies.values()]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DesignLibrary':
        return cls([Stock.from_dict(s) for s in data.get("stocks") or []],
                   [Assembly.from_dict(a) for a in data.get("assemblies") or []])


@dataclass
class LibraryImportCheck:
    missing_stocks: List[Stock] = field(default_factory=list)
    missing_assemblies: List[Assembly] = field(default_factory=list)

    @property
    def has_items(self) -> bool:
        return bool(self.missing_stocks or self.missing_assemblies)


def _library_id() -> str:
    return f"{LIBRARY_ID_PREFIX}{generate_id()}"


def is_stock_in_library(stock: Stock, library_stocks: Sequence[Stock]) -> bool:
    """Matches by id, or by name, dimensions and grain for stocks copied under a different id."""
    return any(ls.id == stock.id or
               (ls.name == stock.name and ls.length == stock.length and ls.width == stock.width and
                ls.thickness == stock.thickness and ls.grain_direction == stock.grain_direction)
               for ls in library_stocks)


def is_assembly_in_library(assembly: Assembly, library_assemblies: Sequence[Assembly]) -> bool:
    """Matches by id, or by name and part count."""
    return any(la.id == assembly.id or
               (la.name == assembly.name and len(la.parts) == len(assembly.parts))
               for la in library_assemblies)


def detect_missing_library_items(project_stocks: Sequence[Stock], project_assemblies: Sequence[Assembly],
                                 library: DesignLibrary) -> LibraryImportCheck:
    """Lists the project stocks and assemblies that have no counterpart in the library."""
    library_stocks = library.stocks
    library_assemblies = library.assemblies
    check = LibraryImportCheck(
        missing_stocks=[s for s in project_stocks if not is_stock_in_library(s, library_stocks)],
        missing_assemblies=[a for a in project_assemblies
                            if not is_assembly_in_library(a, library_assemblies)],
    )
    if check.has_items:
        logger.info(f"{len(check.missing_stocks)} stock(s) and {len(check.missing_assemblies)} "
                    f"assembly(ies) are not in the library")
    return check


def create_library_stock_from_project(stock: Stock) -> Stock:
    """Copies a project stock for the library under a fresh library id."""
    return replace(deep_copy(stock), id=_library_id())


def create_library_assembly_from_project(assembly: Assembly) -> Assembly:
    """Copies a project assembly for the library under a fresh library id and timestamps."""
    now = timestamp_now()
    return replace(deep_copy(assembly), id=_library_id(), created_at=now, modified_at=now)

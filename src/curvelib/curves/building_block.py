"""
Curve building blocks: the Jacobian ledger of a calibration.

For every calibrated curve the bundle stores a block (the ordered list of
curves whose market quotes the curve depends on, each with its instrument
ids) and the Jacobian of the curve parameters with respect to those quotes.
Row i of the Jacobian is parameter i of the curve; the column range of each
curve in the block is given by start(name) and count(name).

Provides:
- CurveBuildingBlock: ordered (curve name, instrument ids) entries
- CurveBuildingBlockBundle: curve name -> (block, Jacobian)
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import numpy as np
import pandas as pd

from ..exceptions import BlockConsistencyError, ConfigurationError, NotFoundError


class CurveBuildingBlock:
    """
    Ordered list of curves with the instruments that calibrated them.

    Args:
        entries: (curve name, instrument ids) pairs in column order
    """

    def __init__(self, entries: Iterable[Tuple[str, Sequence[str]]]):
        self._entries: Dict[str, Tuple[str, ...]] = {}
        self._starts: Dict[str, int] = {}
        position = 0
        for name, ids in entries:
            if name in self._entries:
                raise ConfigurationError(f"Curve {name} appears twice in a building block")
            self._entries[name] = tuple(ids)
            self._starts[name] = position
            position += len(ids)
        self._total = position

    @property
    def names(self) -> List[str]:
        return list(self._entries)

    @property
    def total_columns(self) -> int:
        return self._total

    def _check(self, name: str) -> None:
        if name not in self._entries:
            raise NotFoundError(f"Curve {name} is not part of this block")

    def start(self, name: str) -> int:
        """First column of curve `name`."""
        self._check(name)
        return self._starts[name]

    def count(self, name: str) -> int:
        """Number of columns (calibrating instruments) of curve `name`."""
        self._check(name)
        return len(self._entries[name])

    def instrument_ids(self, name: str) -> Tuple[str, ...]:
        self._check(name)
        return self._entries[name]

    def entries(self) -> List[Tuple[str, Tuple[str, ...]]]:
        return list(self._entries.items())

    def column_labels(self) -> List[Tuple[str, str]]:
        """(curve name, instrument id) of every column."""
        return [(name, instrument) for name, ids in self._entries.items() for instrument in ids]

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __eq__(self, other) -> bool:
        if not isinstance(other, CurveBuildingBlock):
            return NotImplemented
        return list(self._entries.items()) == list(other._entries.items())

    def __repr__(self) -> str:
        parts = ", ".join(f"{name}[{len(ids)}]" for name, ids in self._entries.items())
        return f"CurveBuildingBlock({parts})"


class CurveBuildingBlockBundle:
    """
    Jacobians of calibrated curves with respect to market quotes.

    Args:
        data: Curve name -> (block, Jacobian of shape (parameters, block columns))
    """

    def __init__(self, data: Optional[Mapping[str, Tuple[CurveBuildingBlock, np.ndarray]]] = None):
        self._data: Dict[str, Tuple[CurveBuildingBlock, np.ndarray]] = {}
        for name, (block, matrix) in (data or {}).items():
            self.add(name, block, matrix)

    def add(self, name: str, block: CurveBuildingBlock, matrix: np.ndarray) -> None:
        """Record the block and Jacobian of a curve, replacing any previous entry."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] != block.total_columns:
            raise ConfigurationError(
                f"Jacobian of curve {name} has shape {matrix.shape}, "
                f"block has {block.total_columns} columns"
            )
        self._data[name] = (block, matrix)

    def get_block(self, name: str) -> Tuple[CurveBuildingBlock, np.ndarray]:
        try:
            return self._data[name]
        except KeyError:
            raise NotFoundError(f"No building block for curve {name}") from None

    def get_matrix(self, name: str) -> np.ndarray:
        return self.get_block(name)[1]

    def has_curve(self, name: str) -> bool:
        return name in self._data

    @property
    def curve_names(self) -> List[str]:
        return list(self._data)

    def instrument_ids(self, name: str) -> Optional[Tuple[str, ...]]:
        """Instruments behind curve `name` as recorded in any block, or None."""
        for block, _ in self._data.values():
            if name in block:
                return block.instrument_ids(name)
        return None

    def merge(self, other: "CurveBuildingBlockBundle") -> "CurveBuildingBlockBundle":
        """
        Union of two bundles; entries of `other` win on common curve names.

        Raises:
            BlockConsistencyError: If a curve is recorded with different
                instruments in the two bundles
        """
        for name in set(self._all_block_curves()) | set(other._all_block_curves()):
            mine = self.instrument_ids(name)
            theirs = other.instrument_ids(name)
            if mine is not None and theirs is not None and mine != theirs:
                raise BlockConsistencyError(
                    f"Curve {name} is calibrated to {list(mine)} in one bundle and {list(theirs)} in the other"
                )
        result = CurveBuildingBlockBundle()
        result._data = dict(self._data)
        result._data.update(other._data)
        return result

    def _all_block_curves(self) -> List[str]:
        names: List[str] = []
        for block, _ in self._data.values():
            names.extend(block.names)
        return names

    def jacobian_frame(self, name: str) -> pd.DataFrame:
        """
        Jacobian of curve `name` as a labelled DataFrame.

        Rows are curve parameters, columns a (curve, instrument) MultiIndex.
        """
        block, matrix = self.get_block(name)
        labels = block.column_labels()
        columns = pd.MultiIndex.from_arrays(
            [[c for c, _ in labels], [i for _, i in labels]], names=["curve", "instrument"]
        )
        index = pd.Index(range(matrix.shape[0]), name="parameter")
        return pd.DataFrame(matrix, index=index, columns=columns)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"CurveBuildingBlockBundle(curves={self.curve_names})"


__all__ = [
    "CurveBuildingBlock",
    "CurveBuildingBlockBundle",
]

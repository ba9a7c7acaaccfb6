"""Matrix expansion.

A job template with axes ``{os: [a, b], toolchain: [x, y]}`` expands into
one ``MatrixCell`` per element of the cross product, in declaration order
with the last axis varying fastest. ``include`` entries add explicit cells
on top of the product (or replace it when there are no axes).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from itertools import product

from fci.core.config import ConfigurationError
from fci.core.result import Err, Ok, Result
from fci.pipeline.model import Coordinates, MatrixCell

Axes = Sequence[tuple[str, Sequence[str]]]


def expand(
    job: str,
    axes: Axes = (),
    include: Sequence[Mapping[str, str]] = (),
) -> Result[tuple[MatrixCell, ...], ConfigurationError]:
    names = [name for name, _ in axes]
    if len(set(names)) != len(names):
        return Err(ConfigurationError(f"{job}: duplicate matrix axis"))

    for name, values in axes:
        if not name:
            return Err(ConfigurationError(f"{job}: matrix axis without a name"))
        if not values:
            return Err(ConfigurationError(f"{job}: matrix axis '{name}' is empty"))
        if any(not isinstance(v, str) or not v for v in values):
            return Err(ConfigurationError(f"{job}: matrix axis '{name}' has an empty value"))

    coords: list[Coordinates] = []
    if axes:
        for combo in product(*(values for _, values in axes)):
            coords.append(tuple(zip(names, combo)))

    keys: set[str] | None = None
    for entry in include:
        entry_keys = set(entry)
        if not entry_keys:
            return Err(ConfigurationError(f"{job}: empty matrix include entry"))
        if keys is not None and entry_keys != keys:
            return Err(
                ConfigurationError(
                    f"{job}: matrix include entries must share the same keys",
                    hint=f"expected {sorted(keys)}, got {sorted(entry_keys)}",
                )
            )
        keys = entry_keys
        if any(not v for v in entry.values()):
            return Err(ConfigurationError(f"{job}: matrix include entry has an empty value"))
        coords.append(tuple(entry.items()))

    if not coords:
        return Err(ConfigurationError(f"{job}: matrix expands to no cells"))

    if len(set(coords)) != len(coords):
        return Err(ConfigurationError(f"{job}: matrix contains duplicate cells"))

    cells = tuple(MatrixCell(job=job, coordinates=c) for c in coords)
    ids = [c.cell_id for c in cells]
    if len(set(ids)) != len(ids):
        return Err(ConfigurationError(f"{job}: matrix cells are not distinguishable on disk"))
    return Ok(cells)


def single_cell(job: str, **coordinates: str) -> MatrixCell:
    """A singleton (non-matrix) job's only cell."""
    return MatrixCell(job=job, coordinates=tuple(coordinates.items()))

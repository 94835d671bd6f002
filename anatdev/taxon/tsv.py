"""
Taxon Constraint Tables
=======================
TSV 讀寫: 物種列表、物種約束表、人工覆寫表

Formats:
- taxon list: one NCBI taxon id per line (first column), optional header,
  ``#`` comment lines and blank lines ignored
- constraint table: ``domain_id  domain_name  <taxon id> ...`` header, then one
  row per class with ``t``/``f`` cells, rows sorted by class id
- overrides: ``<id prefix>  <taxon id>,<taxon id>,...``; the longest prefix
  matching a class id replaces its taxa

版本: 1.0.0
"""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set, Union

from anatdev.core.exceptions import OntologyConfigurationError, TaxonConstraintFormatError
from anatdev.core.types import TaxonConstraintMap
from anatdev.utils.atomic import atomic_output

logger = logging.getLogger(__name__)

ID_COLUMN = "domain_id"
LABEL_COLUMN = "domain_name"
MISSING_LABEL = "-"

TRUE_VALUES = {"t", "true", "1", "y", "yes"}
FALSE_VALUES = {"f", "false", "0", "n", "no"}


def parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise TaxonConstraintFormatError(f"Not a boolean value: {value!r}")


def _rows(path: Path) -> Iterator[List[str]]:
    """Tab-separated rows, skipping comment and blank lines"""
    with open(path, newline="", encoding="utf-8") as f:
        for row in csv.reader(f, delimiter="\t"):
            if not row or not "".join(row).strip():
                continue
            if row[0].lstrip().startswith("#"):
                continue
            yield [cell.strip() for cell in row]


# =============================================================================
# Taxon List
# =============================================================================
def extract_taxon_ids(path: Union[str, Path]) -> List[int]:
    """
    Read the taxon ids listed in a file, in file order

    Raises:
        TaxonConstraintFormatError: a line other than the header is not an integer
    """
    path = Path(path)
    taxon_ids: List[int] = []
    for line_number, row in enumerate(_rows(path)):
        try:
            taxon_id = int(row[0])
        except ValueError:
            if line_number == 0:
                logger.debug(f"Header line skipped in {path.name}: {row}")
                continue
            raise TaxonConstraintFormatError(
                f"Invalid taxon id in {path}", [row[0]]
            ) from None
        if taxon_id not in taxon_ids:
            taxon_ids.append(taxon_id)
    logger.info(f"Taxon IDs retrieved from {path.name}: {taxon_ids}")
    return taxon_ids


# =============================================================================
# Constraint Table
# =============================================================================
def _read_table(path: Path):
    rows = _rows(path)
    try:
        header = next(rows)
    except StopIteration:
        raise TaxonConstraintFormatError(f"Empty taxon constraint file: {path}") from None
    if len(header) < 2 or header[0] != ID_COLUMN:
        raise TaxonConstraintFormatError(f"Invalid header in {path}", header[:2])
    try:
        taxon_ids = [int(cell) for cell in header[2:]]
    except ValueError:
        raise TaxonConstraintFormatError(
            f"Invalid taxon column in {path}", header[2:]
        ) from None
    return taxon_ids, rows


def extract_taxon_ids_from_constraints(path: Union[str, Path]) -> List[int]:
    """Taxon ids of the columns of a constraint table, in column order"""
    taxon_ids, _ = _read_table(Path(path))
    return taxon_ids


def extract_taxon_constraints(
    path: Union[str, Path],
    overrides: Optional[Mapping[str, Set[int]]] = None,
) -> TaxonConstraintMap:
    """
    Parse a constraint table into {class id: taxa the class exists in}

    Args:
        path: constraint TSV
        overrides: {id prefix: taxon ids}, see apply_taxon_overrides

    Raises:
        TaxonConstraintFormatError: malformed row or duplicate class id
    """
    path = Path(path)
    taxon_ids, rows = _read_table(path)

    constraints: TaxonConstraintMap = {}
    for row in rows:
        if len(row) < 2 + len(taxon_ids):
            raise TaxonConstraintFormatError(f"Incomplete row in {path}", row[:1])
        class_id = row[0]
        if class_id in constraints:
            raise TaxonConstraintFormatError(f"Duplicate class id in {path}", [class_id])
        constraints[class_id] = {
            taxon_id
            for taxon_id, cell in zip(taxon_ids, row[2:2 + len(taxon_ids)])
            if parse_bool(cell)
        }

    logger.info(f"{len(constraints)} taxon constraints read from {path.name}")
    if overrides:
        constraints = apply_taxon_overrides(constraints, overrides, taxon_ids)
    return constraints


def extract_taxon_ids_from_map(constraints: TaxonConstraintMap) -> Set[int]:
    """All taxa appearing in a constraint map"""
    taxon_ids: Set[int] = set()
    for taxa in constraints.values():
        taxon_ids |= taxa
    if not taxon_ids:
        raise TaxonConstraintFormatError("No taxon found in taxon constraints")
    return taxon_ids


def write_taxon_constraints(
    constraints: TaxonConstraintMap,
    labels: Mapping[str, Optional[str]],
    taxon_ids: Iterable[int],
    path: Union[str, Path],
) -> Path:
    """Write the constraint table atomically; rows sorted by class id"""
    path = Path(path)
    taxon_ids = list(taxon_ids)
    with atomic_output(path) as tmp_path:
        with open(tmp_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, delimiter="\t", lineterminator="\n")
            writer.writerow([ID_COLUMN, LABEL_COLUMN] + [str(t) for t in taxon_ids])
            for class_id in sorted(constraints):
                taxa = constraints[class_id]
                writer.writerow(
                    [class_id, labels.get(class_id) or MISSING_LABEL]
                    + ["t" if taxon_id in taxa else "f" for taxon_id in taxon_ids]
                )
    logger.info(f"{len(constraints)} taxon constraints written to {path}")
    return path


# =============================================================================
# Overrides
# =============================================================================
def load_taxon_overrides(path: Union[str, Path]) -> Dict[str, Set[int]]:
    """
    Read curated overrides: ``<id prefix>\\t<taxon id>,<taxon id>``

    An empty taxon list is allowed (the classes exist in no taxon).

    Raises:
        OntologyConfigurationError: the same prefix is listed twice
    """
    path = Path(path)
    overrides: Dict[str, Set[int]] = {}
    for row in _rows(path):
        prefix = row[0]
        if prefix in overrides:
            raise OntologyConfigurationError(f"Prefix overridden twice in {path}: {prefix}")
        cell = row[1] if len(row) > 1 else ""
        try:
            overrides[prefix] = {int(t) for t in cell.split(",") if t.strip()}
        except ValueError:
            raise TaxonConstraintFormatError(
                f"Invalid taxon list in {path}", [prefix]
            ) from None
    logger.info(f"{len(overrides)} taxon constraint overrides read from {path.name}")
    return overrides


def apply_taxon_overrides(
    constraints: TaxonConstraintMap,
    overrides: Mapping[str, Set[int]],
    taxon_ids: Optional[Iterable[int]] = None,
) -> TaxonConstraintMap:
    """
    Replace the taxa of each class with the override of its longest matching prefix

    Override taxa are restricted to ``taxon_ids`` (default: the taxa of the map).
    Classes matching no prefix are unchanged; a new map is returned.
    """
    allowed = set(taxon_ids) if taxon_ids is not None else extract_taxon_ids_from_map(constraints)
    prefixes = sorted(overrides, key=len, reverse=True)

    result: TaxonConstraintMap = {}
    overridden = 0
    for class_id, taxa in constraints.items():
        match = next((p for p in prefixes if class_id.startswith(p)), None)
        if match is None:
            result[class_id] = set(taxa)
            continue
        result[class_id] = set(overrides[match]) & allowed
        overridden += 1
    logger.info(f"{overridden} taxon constraints overridden")
    return result

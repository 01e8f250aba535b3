import json
import re
from beartype.typing import Any, Callable, Dict, List, Optional, Tuple

from featurecli import settings
from featurecli.data_classes.dataclass_gherkin import DataTable
from featurecli.data_classes.validation_exception import DataTableError

TableTransform = Callable[[DataTable], Any]

CELL_ESCAPES = {"n": "\n", "\\": "\\"}


class DataTableParser:
    """Parser for pipe-delimited Gherkin tables.

    Owns a registry of named table transforms; callers can add their own with
    `register_transform` without touching the parser.
    """

    def __init__(self):
        self.transforms: Dict[str, TableTransform] = {}
        self._register_default_transforms()

    def parse_table(
        self,
        lines: List[str],
        trim_cells: bool = True,
        convert_types: bool = True,
        empty_value: Optional[str] = "",
        delimiter: str = settings.DEFAULT_TABLE_DELIMITER,
    ) -> DataTable:
        """Parse table lines into a DataTable.

        Lines that are blank or contain no delimiter are skipped. Cells remain
        strings; `convert_types` only normalizes quoted literals, booleans and
        `null`.

        :param lines: raw table lines
        :return: DataTable with rectangular rows
        """
        rows = []
        for line in lines:
            if not line or not line.strip() or delimiter not in line:
                continue
            cells = self.parse_row(line, trim_cells, convert_types, empty_value, delimiter)
            if cells:
                rows.append(cells)

        if not rows:
            raise DataTableError("Data table must have at least one row")

        width = len(rows[0])
        for index, row in enumerate(rows, start=1):
            if len(row) != width:
                raise DataTableError(f"Data table row {index} has {len(row)} cells but expected {width}")

        return DataTable(rows=rows)

    def parse_row(
        self,
        line: str,
        trim_cells: bool = True,
        convert_types: bool = True,
        empty_value: Optional[str] = "",
        delimiter: str = settings.DEFAULT_TABLE_DELIMITER,
    ) -> List[str]:
        """Split one table line into cells, honouring `\\|` escapes and quoted cells"""
        text = line.strip()
        parts, closed = self._split_cells(text, delimiter)
        if text.startswith(delimiter) and parts:
            parts = parts[1:]
        if closed and parts:
            parts = parts[:-1]

        cells = []
        for cell in parts:
            if trim_cells:
                cell = cell.strip()
            if cell == "" and empty_value is not None:
                cell = empty_value
            if convert_types and cell != "":
                cell = self._convert_type(cell, empty_value)
            cells.append(cell)
        return cells

    @staticmethod
    def _split_cells(text: str, delimiter: str) -> Tuple[List[str], bool]:
        """Character scan over a row; returns the raw parts and whether the row ended on a delimiter"""
        parts = []
        current = []
        in_quotes = False
        escape_next = False
        ended_on_delimiter = False

        for char in text:
            ended_on_delimiter = False
            if escape_next:
                if char == delimiter:
                    current.append(char)
                elif char in CELL_ESCAPES:
                    current.append(CELL_ESCAPES[char])
                else:
                    current.append("\\" + char)
                escape_next = False
            elif char == "\\":
                escape_next = True
            elif char == '"':
                in_quotes = not in_quotes
                current.append(char)
            elif char == delimiter and not in_quotes:
                parts.append("".join(current))
                current = []
                ended_on_delimiter = True
            else:
                current.append(char)

        if escape_next:
            current.append("\\")
        parts.append("".join(current))
        return parts, ended_on_delimiter

    @staticmethod
    def _convert_type(value: str, empty_value: Optional[str]) -> str:
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            return value[1:-1]
        lowered = value.lower()
        if lowered in ("true", "false"):
            return lowered
        if lowered == "null":
            return empty_value if empty_value is not None else ""
        return value

    def table_to_objects(self, table: DataTable) -> List[Dict[str, Any]]:
        """Header-keyed dicts with typed values; dotted headers build nested dicts"""
        raw_rows = table.raw()
        if len(raw_rows) < 2:
            raise DataTableError("Table must have a header row and at least one data row to convert to objects")

        headers = raw_rows[0]
        seen = set()
        for header in headers:
            if not header:
                raise DataTableError("Empty header found")
            if header in seen:
                raise DataTableError(f"Duplicate header found: {header}")
            seen.add(header)

        objects = []
        for index, row in enumerate(raw_rows[1:], start=1):
            if len(row) != len(headers):
                raise DataTableError(f"Row {index} has {len(row)} cells but expected {len(headers)}")
            obj: Dict[str, Any] = {}
            for header, value in zip(headers, row):
                if "." in header:
                    self._set_nested(obj, header, value)
                elif isinstance(obj.get(header), dict):
                    raise DataTableError(f"Header '{header}' conflicts with nested headers under '{header}.'")
                else:
                    obj[header] = self.parse_value(value)
            objects.append(obj)
        return objects

    def _set_nested(self, obj: Dict[str, Any], path: str, value: str):
        parts = [part for part in path.split(".") if part]
        current = obj
        for index, part in enumerate(parts[:-1]):
            current = current.setdefault(part, {})
            if not isinstance(current, dict):
                prefix = ".".join(parts[: index + 1])
                raise DataTableError(f"Header '{path}' conflicts with header '{prefix}'")
        if parts:
            if isinstance(current.get(parts[-1]), dict):
                raise DataTableError(f"Header '{path}' conflicts with nested headers under '{path}.'")
            current[parts[-1]] = self.parse_value(value)

    @staticmethod
    def parse_value(value: str) -> Any:
        if value in ("", "null"):
            return None
        if value == "true":
            return True
        if value == "false":
            return False
        if re.fullmatch(r"-?\d+", value):
            return int(value)
        if re.fullmatch(r"-?\d+\.\d+", value):
            return float(value)
        if (value.startswith("[") and value.endswith("]")) or (value.startswith("{") and value.endswith("}")):
            try:
                return json.loads(value)
            except (ValueError, RecursionError):
                return value
        return value

    @staticmethod
    def table_to_map(table: DataTable) -> Dict[str, str]:
        result = {}
        for row in table.raw():
            if len(row) != 2:
                raise DataTableError("Table must have exactly 2 columns to convert to map")
            key, value = row
            if key in result:
                raise DataTableError(f"Duplicate key found: {key}")
            result[key] = value
        return result

    @staticmethod
    def table_to_arrays(table: DataTable) -> List[List[str]]:
        return table.raw()

    @staticmethod
    def transpose(table: DataTable) -> DataTable:
        raw_rows = table.raw()
        if not raw_rows:
            return table
        return DataTable(rows=[list(column) for column in zip(*raw_rows)])

    @staticmethod
    def table_to_vertical_map(table: DataTable) -> Dict[str, Any]:
        """First column as keys; one remaining value is kept as-is, several become a list"""
        result = {}
        if len(table.header) < 2:
            raise DataTableError("Vertical map requires at least 2 columns")
        for row in table.raw():
            values = row[1:]
            result[row[0]] = values[0] if len(values) == 1 else values
        return result

    @staticmethod
    def table_to_horizontal_map(table: DataTable) -> Dict[str, str]:
        """Header row as keys, second row as values"""
        raw_rows = table.raw()
        if len(raw_rows) != 2:
            raise DataTableError("Horizontal map requires exactly 2 rows")
        return dict(zip(raw_rows[0], raw_rows[1]))

    def register_transform(self, name: str, transform: TableTransform):
        self.transforms[name] = transform

    def apply_transform(self, table: DataTable, transform_name: str) -> Any:
        transform = self.transforms.get(transform_name)
        if transform is None:
            raise DataTableError(f"Unknown table transform: {transform_name}")
        return transform(table)

    def _register_default_transforms(self):
        self.register_transform("objects", self.table_to_objects)
        self.register_transform("map", self.table_to_map)
        self.register_transform("arrays", self.table_to_arrays)
        self.register_transform("transpose", self.transpose)
        self.register_transform("verticalMap", self.table_to_vertical_map)
        self.register_transform("horizontalMap", self.table_to_horizontal_map)

    @staticmethod
    def validate_table(table: DataTable) -> Tuple[bool, List[str]]:
        errors = []
        raw_rows = table.raw()
        if not raw_rows:
            errors.append("Table must have at least one row")
        else:
            width = len(raw_rows[0])
            for index, row in enumerate(raw_rows, start=1):
                if len(row) != width:
                    errors.append(f"Row {index} has {len(row)} columns but expected {width}")
        return not errors, errors

    @staticmethod
    def format_table(table: DataTable, padding: int = 1, alignments: Optional[List[str]] = None) -> str:
        """Render a table back to aligned Gherkin rows.

        :param alignments: per-column "left", "right" or "center"
        """
        alignments = alignments or []
        escaped = [[cell.replace("\\", "\\\\").replace("|", "\\|").replace("\n", "\\n") for cell in row] for row in table.raw()]
        widths: Dict[int, int] = {}
        for row in escaped:
            for index, cell in enumerate(row):
                widths[index] = max(widths.get(index, 0), len(cell))

        pad = " " * padding
        lines = []
        for row in escaped:
            cells = []
            for index, cell in enumerate(row):
                alignment = alignments[index] if index < len(alignments) else "left"
                if alignment == "right":
                    cell = cell.rjust(widths[index])
                elif alignment == "center":
                    cell = cell.center(widths[index])
                else:
                    cell = cell.ljust(widths[index])
                cells.append(f"{pad}{cell}{pad}")
            lines.append("|" + "|".join(cells) + "|")
        return "\n".join(lines)

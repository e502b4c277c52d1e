"""page/row/cell model of the tables extracted from the manuals
"""

import dataclasses as _dataclasses
import typing as _typing


class PatchError(AssertionError):
    pass


@_dataclasses.dataclass
class BoundingBox:
    left: float = 0.0
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0


@_dataclasses.dataclass
class Cell:
    text: str = ""
    row: int = 0
    col: int = 0
    bounding_box: BoundingBox = _dataclasses.field(default_factory=BoundingBox)


@_dataclasses.dataclass
class Row:
    cells: _typing.List[Cell] = _dataclasses.field(default_factory=list)
    bounding_box: BoundingBox = _dataclasses.field(default_factory=BoundingBox)

    def __iter__(self):
        yield from self.cells

    def __len__(self):
        return len(self.cells)

    @property
    def texts(self):
        return tuple(cell.text for cell in self.cells)


@_dataclasses.dataclass
class Page:
    number: int = 0
    width: float = 0.0
    height: float = 0.0
    rows: _typing.List[Row] = _dataclasses.field(default_factory=list)

    def __iter__(self):
        yield from self.rows

    def __len__(self):
        return len(self.rows)

    @classmethod
    def table(cls, texts, number=0, width=0.0, height=0.0):
        rows = []
        for (row, line) in enumerate(texts):
            cells = [Cell(text=text, row=row, col=col)
                for (col, text) in enumerate(line)]
            rows.append(Row(cells=cells))
        return cls(number=number, width=width, height=height, rows=rows)


@_dataclasses.dataclass(eq=True, frozen=True)
class DocumentId:
    title: str = ""
    creation_date: str = ""
    modification_date: str = ""

    def __str__(self):
        return (f"{self.title!r} "
            f"(created {self.creation_date or '?'}, "
            f"modified {self.modification_date or '?'})")


@_dataclasses.dataclass
class Document:
    document_id: DocumentId = _dataclasses.field(default_factory=DocumentId)
    pages: _typing.List[Page] = _dataclasses.field(default_factory=list)
    patched: bool = False

    def __iter__(self):
        yield from self.pages


@_dataclasses.dataclass(eq=True, frozen=True)
class PagePatch:
    """a correction of one cell: replaces its text or removes the cell

    The cell must still contain the expected text when the patch is
    applied, otherwise the manual changed since the patch was written.
    """
    row: int
    col: int
    expected: str
    replacement: _typing.Optional[str] = None
    remove_cell: bool = False

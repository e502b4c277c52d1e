"""primitives to read and patch the tables of a page

Rows and cells are addressed by position; negative positions count from
the end, so that row -1 is the last row of the page and col -1 the last
cell of the row.
"""

from x86isa.pdf.document import PatchError
from x86isa.util import LogType, log


EMPTY = ""


def index(size, position):
    if not (-size <= position < size):
        return None
    if position < 0:
        return (size + position)
    return position


def row_or_none(page, row):
    if page is None:
        return None
    row = index(len(page.rows), row)
    if row is None:
        return None
    return page.rows[row]


def row_cell_or_none(row, col):
    if row is None:
        return None
    col = index(len(row.cells), col)
    if col is None:
        return None
    return row.cells[col]


def cell_or_none(page, row, col):
    return row_cell_or_none(row_or_none(page, row), col)


def cell(page, row, col):
    """returns the text of the cell, or EMPTY if there is no such cell"""
    block = cell_or_none(page, row, col)
    if block is None:
        return EMPTY
    return block.text


def row_cell(row, col):
    block = row_cell_or_none(row, col)
    if block is None:
        return EMPTY
    return block.text


# the mutable accessors return the cell itself, its text is written through
# the text attribute.  None means there is nothing to write into.
def mutable_cell(page, row, col):
    return cell_or_none(page, row, col)


def mutable_row_cell(row, col):
    return row_cell_or_none(row, col)


def check_patch(patch, page):
    block = cell_or_none(page, patch.row, patch.col)
    if block is None or block.text != patch.expected:
        return False
    return (patch.remove_cell or patch.replacement is not None)


def apply_patch_or_abort(patch, page):
    block = mutable_cell(page, patch.row, patch.col)
    if block is None:
        raise PatchError(f"no valid cell for patch {patch!r} "
            f"on page {page.number}")
    if block.text != patch.expected:
        raise PatchError(f"can't apply patch {patch!r} on page "
            f"{page.number}: found {block.text!r}")

    if patch.remove_cell:
        row = row_or_none(page, patch.row)
        del row.cells[index(len(row.cells), patch.col)]
        for (col, block) in enumerate(row.cells):
            block.col = col
    elif patch.replacement is not None:
        block.text = patch.replacement
    else:
        raise PatchError("patch must either replace or remove the cell: "
            f"{patch!r}")


def patch_page(page, patches):
    patches = tuple(patches)
    if patches:
        log(f"Patching page {page.number}", kind=LogType.Patch)
    for patch in patches:
        apply_patch_or_abort(patch, page)
    return page


def body_rows(page, margin, max_row=-1):
    """returns the rows between the header and the footer of the page

    The header and the footer are the bands of height margin at the top
    and the bottom of the page.  If max_row is not negative, at most the
    first max_row rows of the body are returned.
    """
    top = margin
    bottom = (page.height - margin)
    rows = []
    for row in page.rows:
        if len(rows) == max_row:
            break
        box = row.bounding_box
        if box.top > top and box.bottom < bottom:
            rows.append(row)
    return rows

"""patch sets correcting the extraction errors of each manual revision

The patch sets are read from CSV files with the following columns:

    title,creation_date,modification_date,page,row,col,expected,replacement,remove_cell

Lines starting with "#" are comments.  The first three columns identify
the revision of the manual, a patch set only applies to the document
with exactly that identifier.
"""

import copy as _copy
import csv as _csv
import dataclasses as _dataclasses
import difflib as _difflib
import os as _os
import pathlib as _pathlib
import typing as _typing

from x86isa.pdf.document import (
    DocumentId,
    PagePatch,
    PatchError,
)
from x86isa.pdf.utils import (
    cell_or_none,
    patch_page,
)
from x86isa.util import LogType, log


@_dataclasses.dataclass
class PageChanges:
    page_number: int
    patches: _typing.List[PagePatch] = _dataclasses.field(default_factory=list)

    def __iter__(self):
        yield from self.patches


@_dataclasses.dataclass
class DocumentChanges:
    document_id: DocumentId
    pages: _typing.List[PageChanges] = _dataclasses.field(default_factory=list)

    def __iter__(self):
        yield from self.pages


@_dataclasses.dataclass
class DocumentsChanges:
    documents: _typing.List[DocumentChanges] = \
        _dataclasses.field(default_factory=list)

    def __iter__(self):
        yield from self.documents

    def __len__(self):
        return len(self.documents)


def find_patches_dir():
    return _os.environ.get("X86ISA_PATCHES_DIR")


def parse(stream):
    lines = filter(lambda line: not line.strip().startswith("#"), stream)
    yield from _csv.DictReader(lines)


def flag(value):
    return value.strip().lower() in ("1", "true", "yes")


def document_id(entry):
    return DocumentId(title=entry["title"],
        creation_date=entry.get("creation_date", ""),
        modification_date=entry.get("modification_date", ""))


def page_patch(entry):
    remove_cell = flag(entry.get("remove_cell") or "")
    replacement = entry.get("replacement")
    if remove_cell:
        replacement = None
    return PagePatch(row=int(entry["row"]), col=int(entry["col"]),
        expected=entry["expected"],
        replacement=replacement,
        remove_cell=remove_cell)


def load_changes(stream, patch_sets=None):
    """adds the patches from the stream, keeping their order"""
    if patch_sets is None:
        patch_sets = DocumentsChanges()
    documents = {changes.document_id:changes for changes in patch_sets}
    for entry in parse(stream):
        key = document_id(entry)
        changes = documents.get(key)
        if changes is None:
            changes = DocumentChanges(document_id=key)
            documents[key] = changes
            patch_sets.documents.append(changes)
        number = int(entry["page"])
        pages = [page for page in changes if page.page_number == number]
        if pages:
            page = pages[-1]
        else:
            page = PageChanges(page_number=number)
            changes.pages.append(page)
        page.patches.append(page_patch(entry))
    return patch_sets


def load_configurations(directory=None):
    if directory is None:
        directory = find_patches_dir()
    patch_sets = DocumentsChanges()
    if directory is None:
        return patch_sets
    directory = _pathlib.Path(directory)
    if not directory.is_dir():
        log(f"no patch directory {str(directory)!r}", kind=LogType.Patch)
        return patch_sets
    for path in sorted(directory.glob("*.csv")):
        log(f"Reading configuration file {str(path)!r}", kind=LogType.Patch)
        with open(path, "r", encoding="UTF-8") as stream:
            load_changes(stream, patch_sets)
    return patch_sets


def patches_for(patch_sets, document_id):
    """returns the patch set of the document, None if it has none"""
    for changes in patch_sets:
        if changes.document_id == document_id:
            return changes
    return None


def page_changes(document_changes, page_number):
    result = PageChanges(page_number=page_number)
    for changes in document_changes:
        if changes.page_number == page_number:
            result.patches.extend(changes.patches)
    return result


def patch_document(document, patch_sets):
    changes = patches_for(patch_sets, document.document_id)
    if changes is None:
        log(f"no patches for {document.document_id}", kind=LogType.Patch)
        return document
    if document.patched:
        raise PatchError(f"{document.document_id} is already patched")

    # a page is only put back into the document once all of its patches
    # applied.
    for (idx, page) in enumerate(document.pages):
        patches = page_changes(changes, page.number)
        if not patches.patches:
            continue
        document.pages[idx] = patch_page(_copy.deepcopy(page), patches)
    document.patched = True
    return document


class BlockIndex:
    """the cells of a document in reading order, with their positions"""
    def __init__(self, document):
        self.texts = []
        self.positions = []
        self.__indices = {}
        for page in document:
            for row in page:
                for block in row:
                    position = (page.number, block.row, block.col)
                    if position in self.__indices:
                        raise ValueError(f"duplicate cell at {position}")
                    self.__indices[position] = len(self.positions)
                    self.positions.append(position)
                    self.texts.append(block.text)
        return super().__init__()

    def __len__(self):
        return len(self.positions)

    def index(self, position):
        return self.__indices.get(position)


def block_mapping(texts_from, texts_to):
    """maps the cells of one document onto the equal cells of another

    Runs of equal cells are matched longest first; the matches never
    cross, so the mapping preserves the reading order.
    """
    matcher = _difflib.SequenceMatcher(a=texts_from, b=texts_to,
        autojunk=False)
    mapping = {}
    for (start_from, start_to, size) in matcher.get_matching_blocks():
        for offset in range(size):
            mapping[start_from + offset] = (start_to + offset)
    return mapping


def patch_position(document, page_number, patch):
    for page in document:
        if page.number != page_number:
            continue
        block = cell_or_none(page, patch.row, patch.col)
        if block is not None and block.text == patch.expected:
            return (page_number, block.row, block.col)
    return None


def rewrite_patch(mapping, index_from, index_to, position, patch):
    """returns (page_number, patch) in the other document, or None"""
    idx = index_from.index(position)
    if idx is None or idx not in mapping:
        return None
    (page_number, row, col) = index_to.positions[mapping[idx]]
    return (page_number, _dataclasses.replace(patch, row=row, col=col))


def _document_changes(document_id, page_patches):
    return DocumentChanges(document_id=document_id, pages=[
        PageChanges(page_number=number, patches=patches)
        for (number, patches) in sorted(page_patches.items())
    ])


def transfer_patches(changes, from_document, to_document):
    """re-bases the patches written for one revision of a manual

    The patches of changes target from_document; each one is moved to the
    cell of to_document that matches the cell it targets.  Returns the
    (successful, failed) changes: the successful ones are keyed by the
    identifier of to_document, the failed ones are left untouched and
    keyed by the identifier of from_document.  A patch fails when its
    cell in from_document does not hold the expected text, or when that
    cell has no counterpart in to_document.
    """
    log("Building index for original document", kind=LogType.Patch)
    index_from = BlockIndex(from_document)
    log("Building index for destination document", kind=LogType.Patch)
    index_to = BlockIndex(to_document)
    log("Finding text block matches", kind=LogType.Patch)
    mapping = block_mapping(index_from.texts, index_to.texts)

    (successful, failed) = ({}, {})
    for page in changes:
        for patch in page:
            position = patch_position(from_document, page.page_number, patch)
            rewritten = None
            if position is not None:
                rewritten = rewrite_patch(mapping, index_from, index_to,
                    position, patch)
            if rewritten is None:
                failed.setdefault(page.page_number, []).append(patch)
            else:
                (page_number, patch) = rewritten
                successful.setdefault(page_number, []).append(patch)

    log(f"transferred {sum(map(len, successful.values()))} patches, "
        f"{sum(map(len, failed.values()))} failed", kind=LogType.Patch)
    return (_document_changes(to_document.document_id, successful),
        _document_changes(from_document.document_id, failed))

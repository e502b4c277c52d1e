import io
import os
import pathlib
import tempfile
import unittest
from unittest import mock

from x86isa.pdf.document import (
    Document,
    DocumentId,
    Page,
    PagePatch,
    PatchError,
)
from x86isa.pdf.patches import (
    DocumentChanges,
    DocumentsChanges,
    PageChanges,
    block_mapping,
    load_changes,
    load_configurations,
    page_changes,
    patch_document,
    patches_for,
    transfer_patches,
)
from x86isa.pdf.utils import cell


CONFIGURATION = """\
# patches for the fake manuals
title,creation_date,modification_date,page,row,col,expected,replacement,remove_cell
doc 1,D:2019,D:2020,5,0,0,incorrect,correct,
doc 1,D:2019,D:2020,5,-1,0,to remove,,1
doc 1,D:2019,D:2020,7,1,1,ADD r32,ADD r32; m32,
doc 2,D:2021,,5,0,0,old,new,
"""


def fake_document(title="doc 1"):
    return Document(
        document_id=DocumentId(title=title,
            creation_date="D:2019", modification_date="D:2020"),
        pages=[
            Page.table([["incorrect"], ["to replace"], ["to remove", "kept"]],
                number=5),
            Page.table([["untouched"]], number=6),
        ])


class LoadTestCase(unittest.TestCase):
    def test_load_changes(self):
        patch_sets = load_changes(io.StringIO(CONFIGURATION))
        self.assertEqual(len(patch_sets), 2)
        (doc1, doc2) = patch_sets
        self.assertEqual(doc1.document_id, DocumentId(title="doc 1",
            creation_date="D:2019", modification_date="D:2020"))
        self.assertEqual([page.page_number for page in doc1], [5, 7])
        self.assertEqual(doc1.pages[0].patches, [
            PagePatch(row=0, col=0, expected="incorrect",
                replacement="correct"),
            PagePatch(row=-1, col=0, expected="to remove",
                remove_cell=True),
        ])
        self.assertEqual(doc1.pages[1].patches, [
            PagePatch(row=1, col=1, expected="ADD r32",
                replacement="ADD r32; m32"),
        ])
        self.assertEqual(doc2.document_id.modification_date, "")

    def test_load_configurations(self):
        with tempfile.TemporaryDirectory() as directory:
            directory = pathlib.Path(directory)
            (directory / "sdm.csv").write_text(CONFIGURATION,
                encoding="UTF-8")
            (directory / "notes.txt").write_text("not a patch set",
                encoding="UTF-8")
            patch_sets = load_configurations(directory)
            self.assertEqual(len(patch_sets), 2)

            with mock.patch.dict(os.environ,
                    {"X86ISA_PATCHES_DIR": str(directory)}):
                self.assertEqual(load_configurations(), patch_sets)

    def test_missing_configuration(self):
        self.assertEqual(len(load_configurations("/nonexistent/patches")), 0)
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(len(load_configurations()), 0)


class LookupTestCase(unittest.TestCase):
    def test_patches_for(self):
        patch_sets = load_changes(io.StringIO(CONFIGURATION))
        changes = patches_for(patch_sets, fake_document().document_id)
        self.assertIs(changes, patch_sets.documents[0])

    def test_other_revision(self):
        patch_sets = load_changes(io.StringIO(CONFIGURATION))
        # same title, different revision
        document_id = DocumentId(title="doc 1",
            creation_date="D:2019", modification_date="D:2022")
        self.assertIsNone(patches_for(patch_sets, document_id))
        self.assertIsNone(patches_for(DocumentsChanges(), document_id))

    def test_page_changes(self):
        first = PagePatch(row=0, col=0, expected="a", replacement="b")
        second = PagePatch(row=1, col=0, expected="c", replacement="d")
        changes = DocumentChanges(document_id=DocumentId(title="doc"),
            pages=[
                PageChanges(page_number=3, patches=[first]),
                PageChanges(page_number=4, patches=[second]),
                PageChanges(page_number=3, patches=[second]),
            ])
        self.assertEqual(page_changes(changes, 3).patches, [first, second])
        self.assertEqual(page_changes(changes, 5).patches, [])


class PatchDocumentTestCase(unittest.TestCase):
    def test_patch_document(self):
        patch_sets = load_changes(io.StringIO(CONFIGURATION))
        document = patch_document(fake_document(), patch_sets)
        (page5, page6) = document.pages
        self.assertEqual(cell(page5, 0, 0), "correct")
        self.assertEqual(cell(page5, 1, 0), "to replace")
        self.assertEqual(cell(page5, 2, 0), "kept")
        self.assertEqual(page5.rows[2].cells[0].col, 0)
        self.assertEqual(cell(page6, 0, 0), "untouched")
        self.assertTrue(document.patched)

    def test_applied_once(self):
        patch_sets = load_changes(io.StringIO(CONFIGURATION))
        document = patch_document(fake_document(), patch_sets)
        with self.assertRaises(PatchError):
            patch_document(document, patch_sets)

    def test_no_patches(self):
        patch_sets = load_changes(io.StringIO(CONFIGURATION))
        document = fake_document(title="unknown manual")
        self.assertEqual(patch_document(document, patch_sets),
            fake_document(title="unknown manual"))
        self.assertFalse(document.patched)

    def test_mismatch_leaves_page_untouched(self):
        document = fake_document()
        page = document.pages[0]
        patch_sets = DocumentsChanges(documents=[
            DocumentChanges(document_id=document.document_id, pages=[
                PageChanges(page_number=5, patches=[
                    PagePatch(row=0, col=0, expected="incorrect",
                        replacement="correct"),
                    PagePatch(row=1, col=0, expected="stale",
                        replacement="whatever"),
                ]),
            ]),
        ])
        with self.assertRaises(PatchError):
            patch_document(document, patch_sets)
        self.assertIs(document.pages[0], page)
        self.assertEqual(cell(document.pages[0], 0, 0), "incorrect")


class TransferPatchesTestCase(unittest.TestCase):
    def changes(self):
        return DocumentChanges(document_id=DocumentId(title="doc 1"), pages=[
            PageChanges(page_number=5, patches=[
                PagePatch(row=0, col=0, expected="incorrect",
                    replacement="correct"),
                PagePatch(row=1, col=0, expected="to replace",
                    replacement="replaced"),
                PagePatch(row=-1, col=0, expected="to remove",
                    remove_cell=True),
            ]),
        ])

    def test_transfer_patches(self):
        from_document = Document(document_id=DocumentId(title="doc 1"),
            pages=[Page.table([["incorrect"], ["to replace"], ["to remove"]],
                number=5)])
        to_document = Document(document_id=DocumentId(title="doc 2"),
            pages=[Page.table([["incorrect"], ["to replace with typo"],
                ["to remove"]], number=6)])

        (successful, failed) = transfer_patches(self.changes(),
            from_document, to_document)
        self.assertEqual(successful, DocumentChanges(
            document_id=DocumentId(title="doc 2"), pages=[
                PageChanges(page_number=6, patches=[
                    PagePatch(row=0, col=0, expected="incorrect",
                        replacement="correct"),
                    PagePatch(row=2, col=0, expected="to remove",
                        remove_cell=True),
                ]),
            ]))
        self.assertEqual(failed, DocumentChanges(
            document_id=DocumentId(title="doc 1"), pages=[
                PageChanges(page_number=5, patches=[
                    PagePatch(row=1, col=0, expected="to replace",
                        replacement="replaced"),
                ]),
            ]))

        # the transferred patches apply to the new revision.
        patch_sets = DocumentsChanges(documents=[successful])
        document = patch_document(to_document, patch_sets)
        self.assertEqual(cell(document.pages[0], 0, 0), "correct")
        self.assertEqual(len(document.pages[0].rows[2].cells), 0)

    def test_moved_cells(self):
        # an inserted row shifts the cells, and the page changes.
        from_document = Document(pages=[Page.table(
            [["header"], ["incorrect"], ["to replace"], ["to remove"]],
            number=5)])
        to_document = Document(pages=[
            Page.table([["header"], ["new row"]], number=7),
            Page.table([["incorrect"], ["to replace"], ["to remove"]],
                number=8),
        ])
        changes = self.changes()
        changes.pages[0].patches[0:2] = [
            PagePatch(row=1, col=0, expected="incorrect",
                replacement="correct"),
            PagePatch(row=2, col=0, expected="to replace",
                replacement="replaced"),
        ]
        (successful, failed) = transfer_patches(changes, from_document,
            to_document)
        self.assertEqual(len(failed.pages), 0)
        (page,) = successful.pages
        self.assertEqual(page.page_number, 8)
        self.assertEqual([(patch.row, patch.col) for patch in page],
            [(0, 0), (1, 0), (2, 0)])

    def test_missing_target(self):
        from_document = Document(pages=[Page.table([["other"]], number=5)])
        to_document = Document(pages=[Page.table([["other"]], number=5)])
        (successful, failed) = transfer_patches(self.changes(),
            from_document, to_document)
        self.assertEqual(successful.pages, [])
        self.assertEqual(failed.pages, self.changes().pages)

    def test_block_mapping(self):
        self.assertEqual(block_mapping(
            ["a", "b", "c", "d"],
            ["x", "a", "b", "y", "d"]),
            {0: 1, 1: 2, 3: 4})
        self.assertEqual(block_mapping(["a"], []), {})


if __name__ == "__main__":
    unittest.main()
